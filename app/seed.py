"""
Database Seed Script

Populates reference data: branch, roles, admin user, catalog, modifiers,
a sample customer and per-branch prices. Every step looks the row up first
and only inserts when it is missing, so the script can be re-run safely.

Run from project root:
    python -m app.seed

Author: Khalil_Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Type, TypeVar

from passlib.context import CryptContext
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings, setup_logging
from app.models import (
    Branch,
    Category,
    Customer,
    CustomerAddress,
    Product,
    ProductModifier,
    ProductModifierLink,
    ProductModifierOption,
    ProductPrice,
    Role,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto", argon2__type="ID")

# Anchor for prices that have always applied
PRICE_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

ModelT = TypeVar("ModelT")


@dataclass
class SeedSummary:
    """What the seed ended up with (created or already present)."""
    branch: str
    roles: list[str]
    admin_user: str
    categories: list[str]
    products: list[str]
    modifier: str
    customer: str
    created: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


async def get_or_create(
    session: AsyncSession,
    model: Type[ModelT],
    defaults: Optional[dict[str, Any]] = None,
    **lookup: Any,
) -> tuple[ModelT, bool]:
    """
    Return the row matching ``lookup``, inserting it with ``defaults`` if absent.

    Existing rows are returned as-is; ``defaults`` never overwrite them.
    """
    result = await session.execute(select(model).filter_by(**lookup).limit(1))
    instance = result.scalar_one_or_none()
    if instance is not None:
        return instance, False

    instance = model(**lookup, **(defaults or {}))
    session.add(instance)
    await session.flush()
    return instance, True


async def seed(session: AsyncSession, admin_password: str = "admin123") -> SeedSummary:
    """Run every seed step inside the caller's transaction."""
    created: list[str] = []

    def track(label: str, was_created: bool) -> None:
        if was_created:
            created.append(label)
            logger.debug(f"Created {label}")

    # 1) Branch
    branch, was_created = await get_or_create(
        session, Branch,
        code="DIR",
        defaults={
            "name": "Diriamba Centro",
            "city": "Diriamba",
            "address": "Frente al parque central",
        },
    )
    track("branch:DIR", was_created)

    # 2) Roles
    roles: dict[str, Role] = {}
    for name, description in (
        ("ADMIN", "Administrador completo"),
        ("CASHIER", "Caja y cobros"),
        ("WAITER", "Mesero"),
    ):
        roles[name], was_created = await get_or_create(
            session, Role, name=name, defaults={"description": description}
        )
        track(f"role:{name}", was_created)

    # 3) Admin user, linked to the ADMIN role on creation only
    result = await session.execute(select(User).where(User.username == "admin"))
    admin_user = result.scalar_one_or_none()
    if admin_user is None:
        admin_user = User(
            branch_id=branch.id,
            username="admin",
            full_name="Administrador General",
            email="admin@pizzeria.com",
            password_hash=pwd_context.hash(admin_password),
        )
        admin_user.user_roles.append(UserRole(role_id=roles["ADMIN"].id))
        session.add(admin_user)
        await session.flush()
        track("user:admin", True)

    # 4) Top-level categories
    pizzas, was_created = await get_or_create(session, Category, name="Pizzas", parent_id=None)
    track("category:Pizzas", was_created)
    drinks, was_created = await get_or_create(session, Category, name="Bebidas", parent_id=None)
    track("category:Bebidas", was_created)

    # 5) Products
    pizza, was_created = await get_or_create(
        session, Product,
        sku="PZ-MARG",
        defaults={
            "name": "Pizza Margarita",
            "base_price": Decimal("220.00"),
            "tax_percent": Decimal("15.00"),
            "category_id": pizzas.id,
        },
    )
    track("product:PZ-MARG", was_created)

    soda, was_created = await get_or_create(
        session, Product,
        sku="DR-355",
        defaults={
            "name": "Refresco 355ml",
            "base_price": Decimal("35.00"),
            "tax_percent": Decimal("15.00"),
            "category_id": drinks.id,
        },
    )
    track("product:DR-355", was_created)

    # 6) Size modifier, its options, and the link to the pizza
    size, was_created = await get_or_create(
        session, ProductModifier,
        name="Tamaño",
        defaults={"is_required": True, "min_select": 1, "max_select": 1},
    )
    track("modifier:Tamaño", was_created)

    for name, delta, position in (("Mediana", Decimal("0"), 1), ("Grande", Decimal("40"), 2)):
        _, was_created = await get_or_create(
            session, ProductModifierOption,
            modifier_id=size.id,
            name=name,
            defaults={"price_delta": delta, "position": position},
        )
        track(f"option:{name}", was_created)

    _, was_created = await get_or_create(
        session, ProductModifierLink,
        product_id=pizza.id,
        modifier_id=size.id,
        defaults={"position": 1},
    )
    track("link:PZ-MARG/Tamaño", was_created)

    # 7) Sample customer, matched by phone or email
    result = await session.execute(
        select(Customer)
        .where(or_(Customer.phone == "555-1234", Customer.email == "juan@example.com"))
        .options(selectinload(Customer.addresses))
        .limit(1)
    )
    customer = result.scalar_one_or_none()
    if customer is None:
        customer = Customer(
            full_name="Juan Pérez",
            phone="555-1234",
            email="juan@example.com",
            addresses=[
                CustomerAddress(
                    label="Casa",
                    address_line="Barrio Centro #123",
                    city="Diriamba",
                    is_default=True,
                )
            ],
        )
        session.add(customer)
        await session.flush()
        track("customer:Juan Pérez", True)

    # 8) Branch prices in force since the epoch
    for product, price in ((pizza, Decimal("220.00")), (soda, Decimal("35.00"))):
        _, was_created = await get_or_create(
            session, ProductPrice,
            product_id=product.id,
            branch_id=branch.id,
            starts_at=PRICE_EPOCH,
            defaults={"price": price},
        )
        track(f"price:{product.sku}@{branch.code}", was_created)

    return SeedSummary(
        branch=branch.code,
        roles=[role.name for role in roles.values()],
        admin_user=admin_user.username,
        categories=[pizzas.name, drinks.name],
        products=[pizza.sku, soda.sku],
        modifier=size.name,
        customer=customer.full_name,
        created=created,
    )


async def main() -> int:
    """Create tables, run the seed in one transaction. Returns the exit code."""
    from app.database import async_session_maker, engine, init_db

    settings = get_settings()
    try:
        await init_db(engine)
        async with async_session_maker() as session:
            async with session.begin():
                summary = await seed(session, admin_password=settings.seed_admin_password)
        logger.info("Seed summary", extra={"context": summary.to_dict()})
        logger.info(f"✅ Seed completed ({len(summary.created)} rows created)")
        return 0
    except Exception as e:
        logger.exception(f"❌ Seed failed: {e}")
        return 1
    finally:
        await engine.dispose()


def run() -> None:
    """Console entry point."""
    setup_logging()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

"""
SQLAlchemy Database Models

Reference data for the pizzeria:
- Branches, staff users and their roles
- Catalog: categories, products, modifiers and their options
- Customers with delivery addresses
- Per-branch product prices with a validity start

Author: Khalil Bannouri
Version: 1.0.0
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


# =============================================================================
# BRANCHES & STAFF
# =============================================================================

class Branch(Base):
    """A physical restaurant location."""
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(20), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    city = Column(String(80), nullable=True)
    address = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="branch")
    prices = relationship("ProductPrice", back_populates="branch")

    def __repr__(self):
        return f"<Branch {self.code} - {self.name}>"


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(String(255), nullable=True)

    user_roles = relationship("UserRole", back_populates="role")

    def __repr__(self):
        return f"<Role {self.name}>"


class User(Base):
    """Staff account. Passwords are stored as argon2 hashes only."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    username = Column(String(50), nullable=False, unique=True)
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    branch = relationship("Branch", back_populates="users")
    user_roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.username}>"


class UserRole(Base):
    """Link between a user and a role."""
    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)

    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", back_populates="user_roles")


# =============================================================================
# CATALOG
# =============================================================================

class Category(Base):
    """
    Product category. Categories nest through ``parent_id``.

    The (parent_id, name) pair is unique, but NULL parents never collide in
    SQL, so top-level categories are looked up by name before inserting.
    """
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("parent_id", "name", name="uq_category_parent_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.name}>"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    tax_percent = Column(Numeric(5, 2), nullable=False, default=0)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("Category", back_populates="products")
    modifier_links = relationship("ProductModifierLink", back_populates="product")
    prices = relationship("ProductPrice", back_populates="product")

    def __repr__(self):
        return f"<Product {self.sku} - {self.name}>"


class ProductModifier(Base):
    """A choice attached to products, e.g. size. Selection bounds are inclusive."""
    __tablename__ = "product_modifiers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    is_required = Column(Boolean, nullable=False, default=False)
    min_select = Column(Integer, nullable=False, default=0)
    max_select = Column(Integer, nullable=False, default=1)

    options = relationship(
        "ProductModifierOption",
        back_populates="modifier",
        order_by="ProductModifierOption.position",
    )
    product_links = relationship("ProductModifierLink", back_populates="modifier")

    def __repr__(self):
        return f"<ProductModifier {self.name}>"


class ProductModifierOption(Base):
    __tablename__ = "product_modifier_options"
    __table_args__ = (UniqueConstraint("modifier_id", "name", name="uq_modifier_option_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    modifier_id = Column(
        Integer, ForeignKey("product_modifiers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    price_delta = Column(Numeric(10, 2), nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    modifier = relationship("ProductModifier", back_populates="options")

    def __repr__(self):
        return f"<ProductModifierOption {self.name} (+{self.price_delta})>"


class ProductModifierLink(Base):
    """Attaches a modifier to a product."""
    __tablename__ = "product_modifier_links"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    modifier_id = Column(
        Integer, ForeignKey("product_modifiers.id", ondelete="CASCADE"), primary_key=True
    )
    position = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="modifier_links")
    modifier = relationship("ProductModifier", back_populates="product_links")


# =============================================================================
# CUSTOMERS
# =============================================================================

class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(120), nullable=False)
    phone = Column(String(20), nullable=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    addresses = relationship(
        "CustomerAddress", back_populates="customer", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Customer {self.full_name}>"


class CustomerAddress(Base):
    __tablename__ = "customer_addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(
        Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    label = Column(String(50), nullable=True)
    address_line = Column(String(255), nullable=False)
    city = Column(String(80), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)

    customer = relationship("Customer", back_populates="addresses")


# =============================================================================
# PRICING
# =============================================================================

class ProductPrice(Base):
    """
    Price of a product at a branch from ``starts_at`` on.

    ``ends_at`` is NULL for the price currently in force.
    """
    __tablename__ = "product_prices"
    __table_args__ = (
        UniqueConstraint("product_id", "branch_id", "starts_at", name="uq_product_branch_start"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product", back_populates="prices")
    branch = relationship("Branch", back_populates="prices")

    def __repr__(self):
        return f"<ProductPrice product={self.product_id} branch={self.branch_id} {self.price}>"

"""
                Pizzeria API

Backend for a restaurant ordering system: reference data seeding,
welcome page and operational health/diagnostics endpoints.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"

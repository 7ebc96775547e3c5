from inventory_loans.db import Base

__all__ = ["Base"]

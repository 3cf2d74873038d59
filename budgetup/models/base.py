from budgetup.db import Base

__all__ = ["Base"]

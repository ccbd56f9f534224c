"""
Database utilities: baseline seed data.
"""
from schoolms.db.seed_data import seed_all, seed_database

__all__ = ["seed_all", "seed_database"]

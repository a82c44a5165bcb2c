"""
Persistence package. `storage` is the process-wide DBStorage; the application
factory (or a test fixture) points it at a database and calls reload().
"""
from models.db_storage import DBStorage

storage = DBStorage()

from assetdock.adapters.sqlite.jobs import SQLiteJobQueue
from assetdock.adapters.sqlite.migrator import SQLiteMigrator
from assetdock.adapters.sqlite.repos import SQLiteAssetRepo

__all__ = ["SQLiteAssetRepo", "SQLiteJobQueue", "SQLiteMigrator"]

import os

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/rental_inventory_db")

# Application Metadata
PROJECT_NAME = "Rental Inventory Service"
VERSION = "1.0.0"

# Ledger Configuration
LEDGER_RETRY_ATTEMPTS = int(os.getenv("LEDGER_RETRY_ATTEMPTS", 3)) # Retries for a stock row whose version moved underneath us
DEFAULT_STOCK_LOCATION = os.getenv("DEFAULT_STOCK_LOCATION", "main") # Only one location is in use

# Search / Auth
SEARCH_RESULT_LIMIT = int(os.getenv("SEARCH_RESULT_LIMIT", 20))
ADMIN_ROLE = os.getenv("ADMIN_ROLE", "admin")

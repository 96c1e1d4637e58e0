"""
Run the service: python -m table_orders
Connection settings come from the environment (POSTGRES_*, REDIS_*, DATABASE_URL, REDIS_URL).
"""
import uvicorn

from table_orders.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("table_orders.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()

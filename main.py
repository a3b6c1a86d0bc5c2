import uvicorn

from taskboard.config import get_settings
from taskboard.db import Database
from taskboard.main import create_app


def run() -> None:
    settings = get_settings()
    database = Database(settings.database_url, echo=settings.db_echo)
    app = create_app(settings=settings, database=database)
    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    except KeyboardInterrupt:
        pass
    finally:
        database.dispose()


if __name__ == "__main__":
    run()

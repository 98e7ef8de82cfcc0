"""Initialize database tables."""
from sqlmodel import SQLModel

from app.db.config import engine
from app.models.recurrence_rule import TaskRecurrence  # noqa: F401
from app.models.task import Task  # noqa: F401
from app.utils.logger import get_logger

logger = get_logger("workspace-tasks.db")


def init_db(target_engine=None):
    """Create all tables in the database."""
    logger.info("Creating all tables")
    SQLModel.metadata.create_all(target_engine or engine)
    logger.info("Tables created successfully")


if __name__ == "__main__":
    init_db()

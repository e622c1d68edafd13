import asyncio
import logging
import sys

import aiohttp

from appwrite_setup.models.schema_plan import SchemaPlanError
from appwrite_setup.services.config import AppwriteConfig, SetupConfig
from appwrite_setup.services.dependencies import get_schema_plan, get_setup_orchestrator
from appwrite_setup.services.setup.orchestrator import RunReport


logger = logging.getLogger(__name__)


def _ensure_logging() -> None:
    formatter = logging.Formatter("%(levelname)s: %(message)s")
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    else:
        root.setLevel(logging.INFO)
        for handler in root.handlers:
            handler.setFormatter(formatter)


async def setup_appwrite_schema(*, appwrite_config: AppwriteConfig, setup_config: SetupConfig) -> RunReport:
    """Apply the configured schema plan against the Appwrite project."""

    plan = get_schema_plan(setup_config)

    logger.info("Starting Appwrite schema setup")
    logger.info("Endpoint: %s", appwrite_config.endpoint)
    logger.info("Project: %s", appwrite_config.project_id)
    logger.info("Database: %s", appwrite_config.database_id)

    async with aiohttp.ClientSession() as session:
        orchestrator = get_setup_orchestrator(
            appwrite_config=appwrite_config,
            setup_config=setup_config,
            session=session,
        )
        return await orchestrator.run(plan)


def main() -> int:
    _ensure_logging()

    try:
        appwrite_config = AppwriteConfig.from_env()
        setup_config = SetupConfig.from_env()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    try:
        report = asyncio.run(setup_appwrite_schema(appwrite_config=appwrite_config, setup_config=setup_config))
    except SchemaPlanError as exc:
        logger.error("%s", exc)
        return 1

    if report.succeeded:
        logger.info("Setup completed successfully")
    else:
        logger.error("Setup failed: %s", report.cause)
    return report.exit_code


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

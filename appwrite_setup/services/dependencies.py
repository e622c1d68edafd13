from __future__ import annotations

import aiohttp

from appwrite_setup.models.schema_plan import SchemaPlan
from appwrite_setup.services.appwrite_service import AppwriteService
from appwrite_setup.services.config import AppwriteConfig, PropagationStrategy, SetupConfig
from appwrite_setup.services.mutation_executor import MutationExecutor
from appwrite_setup.services.propagation import (
    FixedDelayWaiter,
    NoWaitWaiter,
    PollingWaiter,
    PropagationWaiter,
)
from appwrite_setup.services.setup.orchestrator import SetupOrchestrator
from appwrite_setup.services.setup.plan_applier import PlanApplier
from appwrite_setup.services.setup.quran_gate_plan import build_quran_gate_plan


def get_appwrite_service(config: AppwriteConfig, *, session: aiohttp.ClientSession) -> AppwriteService:
    return AppwriteService(config, session=session)


def get_propagation_waiter(config: SetupConfig, *, service: AppwriteService) -> PropagationWaiter:
    """Pick the wait strategy used between attribute and index creation."""

    if config.propagation_strategy is PropagationStrategy.NONE:
        return NoWaitWaiter()
    if config.propagation_strategy is PropagationStrategy.POLL:
        return PollingWaiter(
            service,
            interval_seconds=config.poll_interval_seconds,
            timeout_seconds=config.propagation_timeout_seconds,
        )
    return FixedDelayWaiter(config.propagation_delay_seconds)


def get_plan_applier(config: SetupConfig, *, service: AppwriteService) -> PlanApplier:
    return PlanApplier(
        service=service,
        executor=MutationExecutor(),
        waiter=get_propagation_waiter(config, service=service),
    )


def get_setup_orchestrator(
    *,
    appwrite_config: AppwriteConfig,
    setup_config: SetupConfig,
    session: aiohttp.ClientSession,
) -> SetupOrchestrator:
    service = get_appwrite_service(appwrite_config, session=session)
    return SetupOrchestrator(
        applier=get_plan_applier(setup_config, service=service),
        show_progress=setup_config.show_progress,
    )


def get_schema_plan(config: SetupConfig) -> SchemaPlan:
    """Plan from APPWRITE_SCHEMA_PLAN_PATH when set, otherwise the built-in plan."""

    if config.schema_plan_path is not None:
        return SchemaPlan.from_json_file(config.schema_plan_path)
    return build_quran_gate_plan()

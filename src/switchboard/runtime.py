"""Runtime assembly — builds every component once and wires them together."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from switchboard.capabilities import CapabilityRegistry
from switchboard.config import SwitchboardConfig
from switchboard.credentials import CredentialPool
from switchboard.dispatch import Dispatcher
from switchboard.extensions import CapabilityPlugin, register_plugins
from switchboard.gateway import EventGateway, WebhookEventGateway
from switchboard.jobs import JobQueue, JobResult, JobStore
from switchboard.llm import ModelConfig, ModelRegistry, build_adapters
from switchboard.plugins import BUILTIN_PLUGINS

logger = structlog.get_logger()


@dataclass
class Runtime:
    config: SwitchboardConfig
    credentials: CredentialPool
    capabilities: CapabilityRegistry
    gateway: EventGateway
    dispatcher: Dispatcher
    models: ModelRegistry | None = None
    jobs: JobQueue | None = None
    plugins: list[str] = field(default_factory=list)

    async def start(self) -> None:
        if self.jobs is not None:
            await self.jobs.start()

    async def close(self) -> None:
        await self.dispatcher.drain()
        if self.jobs is not None:
            await self.jobs.close()
        await self.gateway.close()

    def unregister_capability(self, name: str) -> bool:
        """Remove a capability and keep the auto-generated master prompt in sync."""
        removed = self.capabilities.unregister(name)
        if removed and self.models is not None:
            self.models.refresh_master_prompt()
        return removed


def build_gateway(config: SwitchboardConfig) -> EventGateway:
    """Webhook delivery; without URLs the gateway only logs outbound messages."""
    gateway_cfg = config.gateway
    return WebhookEventGateway(
        response_url=gateway_cfg.response_url,
        ack_url=gateway_cfg.ack_url,
        timeout_s=gateway_cfg.timeout_s,
    )


def build_models(
    config: SwitchboardConfig,
    credentials: CredentialPool,
    capabilities: CapabilityRegistry,
) -> ModelRegistry:
    llm_cfg = config.llm
    models = ModelRegistry(
        ModelConfig(**llm_cfg.base_model_fields()),
        build_adapters(credentials, api_base=llm_cfg.api_base, timeout_s=llm_cfg.timeout_s),
        capabilities,
    )
    for model_id, model_cfg in llm_cfg.models.items():
        models.register(model_id, model_cfg)
    if config.dispatch.master_model_enabled:
        models.get_or_create_master()
    return models


async def build_runtime(
    config: SwitchboardConfig,
    *,
    credentials: CredentialPool | None = None,
    gateway: EventGateway | None = None,
    plugins: list[CapabilityPlugin] | None = None,
) -> Runtime:
    """Build the runtime: credentials, capabilities, models, jobs, gateway, dispatcher."""
    credentials = credentials or CredentialPool.from_env()
    capabilities = CapabilityRegistry(credentials)
    loaded = await register_plugins(capabilities, BUILTIN_PLUGINS if plugins is None else plugins)

    models = build_models(config, credentials, capabilities) if config.llm.enabled else None
    gateway = gateway or build_gateway(config)

    jobs: JobQueue | None = None
    if config.jobs.enabled:
        jobs_cfg = config.jobs
        jobs = JobQueue(
            JobStore(jobs_cfg.data_dir, journal_mode=jobs_cfg.journal_mode),
            capabilities,
            concurrency=jobs_cfg.concurrency,
            default_attempts=jobs_cfg.retry_attempts,
            default_backoff_ms=jobs_cfg.retry_delay_ms,
            poll_interval_s=jobs_cfg.poll_interval_s,
        )
        await jobs.initialize()
        if jobs_cfg.notify_events:
            jobs.on_finished = _job_notifier(gateway)

    dispatcher = Dispatcher(capabilities, models, jobs, gateway, config=config.dispatch)

    logger.info(
        "switchboard.runtime.built",
        capabilities=capabilities.names(),
        plugins=loaded,
        llm=models is not None,
        jobs=jobs is not None,
        gateway=type(gateway).__name__,
    )
    return Runtime(
        config=config,
        credentials=credentials,
        capabilities=capabilities,
        gateway=gateway,
        dispatcher=dispatcher,
        models=models,
        jobs=jobs,
        plugins=loaded,
    )


def _job_notifier(gateway: EventGateway):
    async def notify(result: JobResult) -> None:
        await gateway.send_response(
            f"job:{result.status}",
            result.to_dict(),
            correlation_id=result.id,
            metadata={"job_name": result.name},
        )

    return notify

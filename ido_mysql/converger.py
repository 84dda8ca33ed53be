# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
Convergence pass: applies a compiled feature catalog through a runtime.

Steps are awaited strictly one after another in topological order. The first
failure halts the pass; no later step is applied and nothing is retried.
The service reload fires at most once, after every step succeeded.
"""
from dataclasses import dataclass, field
from typing import Optional

from .adapters.runtime_interface import ApplyResult, ConvergenceRuntime
from .core.notify import ReloadDecision, decide_reload
from .core.resources import (
    CommandResource,
    FileResource,
    LinkResource,
    PackageResource,
    Resource,
    TLSClientResource,
)
from .errors import ExternalCommandError, PackageInstallError
from .feature import IdoMysqlFeature
from .logging_config import bind_context, clear_context, get_logger, register_secret, release_secret
from .services.schema_importer import SchemaImportState

logger = get_logger(__name__)


@dataclass
class StepResult:
    ref: str
    changed: bool


@dataclass
class ConvergenceReport:
    """Outcome of one convergence pass."""

    feature: str
    enabled: bool
    steps: list[StepResult] = field(default_factory=list)
    reload: ReloadDecision = ReloadDecision.SKIP
    schema_state: Optional[SchemaImportState] = None

    @property
    def changed(self) -> bool:
        return any(step.changed for step in self.steps)

    @property
    def changed_refs(self) -> list[str]:
        return [step.ref for step in self.steps if step.changed]

    @property
    def reloaded(self) -> bool:
        return self.reload is ReloadDecision.FIRE

    def to_dict(self) -> dict:
        return {
            "feature": self.feature,
            "enabled": self.enabled,
            "changed": self.changed_refs,
            "reload": self.reload.value,
            "schema_state": self.schema_state.value if self.schema_state else None,
        }


class Converger:
    """Drives one feature to its declared state through a ConvergenceRuntime."""

    def __init__(self, runtime: ConvergenceRuntime):
        self.runtime = runtime

    async def converge(self, feature: IdoMysqlFeature) -> ConvergenceReport:
        """Run one convergence pass.

        Raises:
            ConfigurationError: raised while compiling, before any state change
            ExternalCommandError: a step failed; later steps were not applied
        """
        # Redacted from log output for the duration of this pass only
        register_secret(feature.password)
        bind_context(feature=feature.name)
        try:
            catalog = feature.compile()
            report = ConvergenceReport(feature=feature.name, enabled=feature.enabled)
            logger.info("Convergence started", ensure=feature.params.ensure.value, resources=len(catalog))
            for resource in catalog.ordered():
                changed = await self._apply(resource, feature)
                report.steps.append(StepResult(ref=resource.ref, changed=changed))
                logger.info("Step applied", step=resource.ref, changed=changed)

            report.schema_state = feature.schema_importer.state
            report.reload = self._reload_decision(catalog, report, feature)
            if report.reloaded:
                await self._reload(feature)

            logger.info(
                "Convergence finished",
                changed=report.changed_refs,
                reload=report.reload.value,
                schema_state=report.schema_state.value,
            )
            return report
        finally:
            clear_context()
            release_secret(feature.password)

    def _reload_decision(self, catalog, report: ConvergenceReport, feature: IdoMysqlFeature) -> ReloadDecision:
        toggle_changed = False
        content_changed = False
        for step in report.steps:
            if step.ref == feature.toggle_ref:
                toggle_changed = step.changed
            elif step.changed and catalog.get(step.ref).notify_reload:
                content_changed = True

        # A changed link means it was flipped: enabled now implies disabled before
        previous_enabled = feature.enabled != toggle_changed
        return decide_reload(previous_enabled, feature.enabled, content_changed)

    async def _apply(self, resource: Resource, feature: IdoMysqlFeature) -> bool:
        if isinstance(resource, CommandResource):
            return await feature.schema_importer.converge(self.runtime.run_command)

        if isinstance(resource, FileResource):
            result = await self.runtime.apply_file(resource)
        elif isinstance(resource, PackageResource):
            result = await self.runtime.apply_package(resource)
        elif isinstance(resource, LinkResource):
            result = await self.runtime.apply_link(resource)
        elif isinstance(resource, TLSClientResource):
            result = await self.runtime.register_tls_client(resource)
        else:
            raise TypeError(f"Unsupported resource {resource.ref}")

        self._check(result, resource, feature)
        return result.changed

    def _check(self, result: ApplyResult, resource: Resource, feature: IdoMysqlFeature) -> None:
        if result.success:
            return
        error_cls = PackageInstallError if isinstance(resource, PackageResource) else ExternalCommandError
        logger.error("Step failed", step=resource.ref, error=result.error)
        raise error_cls(
            f"Failed to apply {resource.ref}: {result.error}",
            step=resource.ref,
            details=resource.describe(),
            secrets=[feature.password],
        )

    async def _reload(self, feature: IdoMysqlFeature) -> None:
        logger.info("Reloading service", service=feature.base.service_name)
        result = await self.runtime.request_reload()
        if not result.success:
            raise ExternalCommandError(
                f"Failed to reload {feature.base.service_name}: {result.error}",
                step="reload",
                secrets=[feature.password],
            )

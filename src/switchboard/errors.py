"""Error taxonomy shared by the registries, the job queue and the dispatcher."""

from __future__ import annotations

from typing import Any


class SwitchboardError(Exception):
    """Base class for every error raised by Switchboard components."""

    code = "switchboard_error"

    def to_dict(self) -> dict[str, Any]:
        """Structured form used in results, acknowledgments and HTTP bodies."""
        return {"error": str(self), "code": self.code}


class DuplicateCapability(SwitchboardError):
    code = "duplicate_capability"

    def __init__(self, name: str) -> None:
        super().__init__(f"Capability '{name}' is already registered")
        self.name = name


class NotFound(SwitchboardError):
    code = "not_found"


class CapabilityNotFound(NotFound):
    code = "capability_not_found"

    def __init__(self, name: str) -> None:
        super().__init__(f"Capability '{name}' not found")
        self.name = name


class ModelNotFound(NotFound):
    code = "model_not_found"

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Model '{model_id}' is not registered")
        self.model_id = model_id


class JobNotFound(NotFound):
    code = "job_not_found"

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class CredentialMissing(SwitchboardError):
    code = "credential_missing"

    def __init__(self, credential_name: str) -> None:
        super().__init__(f"No credential found for '{credential_name}'")
        self.credential_name = credential_name


class UnsupportedProvider(SwitchboardError):
    code = "unsupported_provider"

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported LLM provider: {provider}")
        self.provider = provider


class ProviderUnavailable(SwitchboardError):
    code = "provider_unavailable"


class InvalidDirective(SwitchboardError):
    code = "invalid_directive"


class ComponentUnavailable(SwitchboardError):
    code = "component_unavailable"

    def __init__(self, component: str) -> None:
        super().__init__(f"{component} is not available")
        self.component = component


class MasterModelFailure(SwitchboardError):
    """Raised inside the decision path; always recovered by the dispatcher."""

    code = "master_model_failure"


class InvalidOperation(SwitchboardError):
    code = "invalid_operation"


class InvalidConversation(SwitchboardError):
    code = "invalid_conversation"


class InvalidModelConfig(SwitchboardError):
    code = "invalid_model_config"

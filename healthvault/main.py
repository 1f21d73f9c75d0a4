"""Composition root for HealthSafe Vault.

This module wires the validator, the encryption service and the ledger
into a WorkflowOrchestrator. It also owns the single process-wide
encryption service.

Security Impact:
    - Exactly one encryption key per process, generated in memory on first use
    - The key is never persisted; records encrypted before a restart cannot be decrypted after it

Architecture:
    - Follows Hexagonal Architecture principles
    - Domain objects receive their collaborators explicitly; nothing reaches for globals
    - Every orchestrator gets its own ledger simulator unless one is passed in
"""

from threading import Lock
from typing import Any, Callable, Mapping, Optional, Union

from healthvault.adapters.ledger import LedgerSubmissionSimulator
from healthvault.domain.health_record import HealthRecord
from healthvault.domain.ports import EncryptionPort, LedgerPort
from healthvault.domain.services import HealthDataValidator
from healthvault.domain.workflow import StageEvent, WorkflowOrchestrator
from healthvault.infrastructure.encryption import EncryptionService
from healthvault.infrastructure.logging_config import get_logger, setup_logging
from healthvault.infrastructure.settings import Settings, settings as default_settings

logger = get_logger(__name__)

_encryption_service: Optional[EncryptionService] = None
_encryption_lock = Lock()


def get_encryption_service(app_settings: Optional[Settings] = None) -> EncryptionService:
    """Return the process-wide encryption service, creating it on first use.

    Parameters:
        app_settings: Settings used only when the service is first created

    Returns:
        EncryptionService shared by every workflow in this process
    """
    global _encryption_service
    with _encryption_lock:
        if _encryption_service is None:
            app_settings = app_settings or default_settings
            _encryption_service = EncryptionService(algorithm_label=app_settings.encryption_algorithm)
            logger.info(f"Process encryption service created (key_id={_encryption_service.get_key_id()})")
        return _encryption_service


def reset_encryption_service() -> None:
    """Drop the process-wide encryption service. The next call generates a new key."""
    global _encryption_service
    with _encryption_lock:
        _encryption_service = None


def create_validator(app_settings: Optional[Settings] = None) -> HealthDataValidator:
    """Create a validator using the configured vital defaults."""
    app_settings = app_settings or default_settings
    return HealthDataValidator(vital_defaults=app_settings.vital_defaults)


def create_ledger(app_settings: Optional[Settings] = None) -> LedgerSubmissionSimulator:
    """Create a fresh in-memory ledger simulator."""
    app_settings = app_settings or default_settings
    logger.info(f"Initializing simulated ledger at {app_settings.contract_address}")
    return LedgerSubmissionSimulator(
        contract_address=app_settings.contract_address,
        max_identifier=app_settings.max_identifier,
    )


def create_workflow(
    app_settings: Optional[Settings] = None,
    *,
    encryption_service: Optional[EncryptionPort] = None,
    ledger: Optional[LedgerPort] = None,
    validator: Optional[HealthDataValidator] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> WorkflowOrchestrator:
    """Create a WorkflowOrchestrator with all collaborators wired.

    Parameters:
        app_settings: Settings to use (module defaults if None)
        encryption_service: Encryption port (the process-wide service if None)
        ledger: Ledger port (a new simulator if None)
        validator: Validator (built from settings if None)
        sleep: Sleep function for the completion cooldown (time.sleep if None)

    Returns:
        WorkflowOrchestrator ready to accept submissions
    """
    app_settings = app_settings or default_settings
    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return WorkflowOrchestrator(
        validator=validator or create_validator(app_settings),
        encryption=encryption_service or get_encryption_service(app_settings),
        ledger=ledger or create_ledger(app_settings),
        mint_price_eth=app_settings.default_mint_price_eth,
        cooldown_seconds=app_settings.completion_cooldown_seconds,
        **kwargs,
    )


def bootstrap(app_settings: Optional[Settings] = None) -> WorkflowOrchestrator:
    """Configure logging from settings and return a ready workflow."""
    app_settings = app_settings or default_settings
    setup_logging(use_json=app_settings.log_json, log_level=app_settings.log_level)
    logger.info(f"{app_settings.app_name} core initialized")
    return create_workflow(app_settings)


def submit_health_record(
    form_data: Union[HealthRecord, Mapping[str, Any]],
    identity: Optional[str],
    workflow: Optional[WorkflowOrchestrator] = None,
) -> list[StageEvent]:
    """Run one submission to completion and return all of its events.

    Parameters:
        form_data: HealthRecord or raw form data
        identity: Connected account address
        workflow: Orchestrator to use (a new one from create_workflow if None)

    Returns:
        Every event of the submission, in order
    """
    workflow = workflow or create_workflow()
    return list(workflow.submit(form_data, identity))

from src.tenant_infra.services.credential_broker import CrossAccountCredentialBroker
from src.tenant_infra.services.infrastructure_launcher import InfrastructureLauncher
from src.tenant_infra.services.provisioning_orchestrator import ProvisioningOrchestrator
from src.tenant_infra.services.stack_poller import StackPoller, should_continue_polling

__all__ = [
    "CrossAccountCredentialBroker",
    "InfrastructureLauncher",
    "ProvisioningOrchestrator",
    "StackPoller",
    "should_continue_polling",
]

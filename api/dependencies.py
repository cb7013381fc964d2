"""
Collaborator wiring for the HTTP surface
Built once per process from configuration; tests override get_services()
"""
import logging
from dataclasses import dataclass
from functools import lru_cache

from config import get_config
from monitoring.module_log import get_module_log
from services.billing_api import BillingApiClient
from services.client_area import ClientAreaController
from services.gamecp_api import build_gateway
from services.provisioning_orchestrator import GameCPProvisioningOrchestrator
from services.sso import SingleSignOn

logger = logging.getLogger(__name__)


@dataclass
class BridgeServices:
    orchestrator: GameCPProvisioningOrchestrator
    client_area: ClientAreaController
    sso: SingleSignOn


def build_services(config=None) -> BridgeServices:
    config = config or get_config()
    module_log = get_module_log()
    module_log.module = config.gamecp.module_name

    store = None
    if config.database.url:
        import database
        store = database.PostgresBillingStore()
        if config.database.module_log_to_db:
            module_log.add_handler(database.write_module_log_entry)

    gateway = build_gateway(config.gamecp, module_log)
    billing_api = BillingApiClient.from_config(config.billing_api, module_log)

    orchestrator = GameCPProvisioningOrchestrator(
        gateway,
        store=store,
        billing_api=billing_api,
        module_log=module_log,
        server_type=config.gamecp.server_type,
    )
    sso = SingleSignOn(gateway, store=store, module_log=module_log, server_type=config.gamecp.server_type)
    client_area = ClientAreaController(orchestrator, sso=sso, module_log=module_log)

    logger.info(f"✅ GameCP bridge services ready (gateway={type(gateway).__name__}, store={'yes' if store else 'no'})")
    return BridgeServices(orchestrator=orchestrator, client_area=client_area, sso=sso)


@lru_cache(maxsize=1)
def get_services() -> BridgeServices:
    return build_services()

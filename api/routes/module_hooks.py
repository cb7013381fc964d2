"""
Billing Hook Routes
One endpoint per module hook; handlers are plain functions because each hook
is a linear sequence of blocking GameCP calls.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from api.dependencies import BridgeServices, get_services
from api.middleware.authentication import verify_bridge_token
from api.schemas.module_params import ClientAreaRequest, ModuleParams

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_bridge_token)])


@router.post("/hooks/test-connection", response_model=dict)
def test_connection(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    """Validate the panel endpoint and API key"""
    return services.orchestrator.test_connection(params.to_params())


@router.post("/hooks/create-account", response_model=dict)
def create_account(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    """Provision a game server for a paid order"""
    return services.orchestrator.create_account(params.to_params()).to_dict()


@router.post("/hooks/suspend-account", response_model=dict)
def suspend_account(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    return services.orchestrator.suspend_account(params.to_params()).to_dict()


@router.post("/hooks/unsuspend-account", response_model=dict)
def unsuspend_account(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    return services.orchestrator.unsuspend_account(params.to_params()).to_dict()


@router.post("/hooks/terminate-account", response_model=dict)
def terminate_account(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    return services.orchestrator.terminate_account(params.to_params()).to_dict()


@router.post("/client-area", response_model=dict)
def client_area(request: ClientAreaRequest, services: BridgeServices = Depends(get_services)):
    """
    Status page data: serverName, status, metrics, connectionAddress, message.
    An optional start/stop/restart action runs before the status fetch.
    """
    return services.client_area.render(request.params.to_params(), action=request.action)


@router.post("/client-area/login")
def client_area_login(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    """Redirect the customer into the GameCP UI via a short-lived SSO token"""
    target = services.client_area.login_redirect(params.to_params())
    if not target:
        return {'success': False, 'redirectTo': None}
    return RedirectResponse(url=target, status_code=303)


@router.post("/sso/service", response_model=dict)
def service_single_sign_on(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    return services.sso.service_sso(params.to_params())


@router.post("/sso/admin", response_model=dict)
def admin_single_sign_on(params: ModuleParams, services: BridgeServices = Depends(get_services)):
    return services.sso.admin_sso(params.to_params())

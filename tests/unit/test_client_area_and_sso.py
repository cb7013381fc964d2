"""
Unit tests for the client area view model and SSO redirects.
"""
import json

import pytest

from services.client_area import ClientAreaController
from services.gamecp_api import ApiFailure, MockGateway
from services.provisioning_orchestrator import GameCPProvisioningOrchestrator
from services.sso import SingleSignOn

STATUS = {
    'gameServer': {
        'serverId': 'mc-7',
        'name': 'Survival',
        'status': 'running',
        'metrics': {'cpu': 12},
        'assignedIpId': 'ip-a',
        'nodeId': {'ipAddresses': [{'_id': 'ip-a', 'external': '178.156.179.34'}]},
        'gameConfig': {'ports': [{'host': 25565}]},
    }
}


@pytest.fixture
def params(module_params):
    module_params['model'] = {'assignedips': 'mc-7', 'dedicatedip': ''}
    return module_params


def _controller(responses, module_log, store=None):
    gateway = MockGateway(responses, module_log)
    orchestrator = GameCPProvisioningOrchestrator(gateway, store=store, module_log=module_log)
    sso = SingleSignOn(gateway, module_log=module_log)
    return ClientAreaController(orchestrator, sso=sso, module_log=module_log), gateway


class TestClientArea:

    def test_status_view(self, params, store, module_log):
        controller, _ = _controller({'game-servers/mc-7': STATUS}, module_log, store)
        view = controller.render(params)

        assert view['templatefile'] == 'clientarea'
        assert view['vars']['serverName'] == 'Survival'
        assert view['vars']['status'] == 'running'
        assert view['vars']['metrics'] == {'cpu': 12}
        assert view['vars']['connectionAddress'] == '178.156.179.34:25565'
        assert view['vars']['message'] is None
        assert store.services[42] == {'dedicatedip': '178.156.179.34:25565'}

    def test_not_provisioned(self, module_params, module_log):
        controller, gateway = _controller({}, module_log)
        view = controller.render(module_params)
        assert view['vars']['error'] == 'Server not yet provisioned or ID missing.'
        assert gateway.calls == []

    def test_status_unavailable(self, params, module_log):
        controller, _ = _controller({'game-servers/mc-7': ApiFailure(http_status=500, message='x')}, module_log)
        view = controller.render(params)
        assert view['vars']['error'] == 'Unable to retrieve server status from GameCP.'
        assert view['vars']['serverId'] == 'mc-7'

    def test_action_runs_before_status(self, params, module_log):
        controller, gateway = _controller({
            'game-servers/mc-7/control': {'success': True},
            'game-servers/mc-7': STATUS,
        }, module_log)

        view = controller.render(params, action='restart')

        assert view['vars']['message'] == 'Restart command sent successfully.'
        assert [c[0] for c in gateway.calls] == ['POST', 'GET']

    def test_failed_action_message(self, params, module_log):
        controller, _ = _controller({
            'game-servers/mc-7/control': ApiFailure(http_status=409, message='Server is installing'),
            'game-servers/mc-7': STATUS,
        }, module_log)
        view = controller.render(params, action='stop')
        assert view['vars']['message'] == 'Failed to stop server: Server is installing'

    def test_unknown_action_is_ignored(self, params, module_log):
        controller, gateway = _controller({'game-servers/mc-7': STATUS}, module_log)
        view = controller.render(params, action='reinstall')
        assert view['vars']['message'] is None
        assert gateway.calls_to('POST', 'control') == 0

    def test_missing_key_renders_error_without_calls(self, params, module_log):
        params['serveraccesshash'] = ''
        controller, gateway = _controller({'game-servers/mc-7': STATUS}, module_log)
        view = controller.render(params)
        assert view['vars']['error'] == 'Error: GameCP API key (access hash) is not configured'
        assert gateway.calls == []

    def test_unexpected_error_renders_error_view(self, params, module_log, mocker):
        controller, _ = _controller({}, module_log)
        mocker.patch.object(controller.orchestrator, 'resolve_credentials', side_effect=RuntimeError('boom'))
        view = controller.render(params)
        assert view['vars']['error'] == 'Error: boom'

    def test_login_redirect_without_sso(self, params, module_log):
        orchestrator = GameCPProvisioningOrchestrator(MockGateway({}, module_log), module_log=module_log)
        assert ClientAreaController(orchestrator, module_log=module_log).login_redirect(params) is None


class TestSingleSignOn:

    def test_service_sso_url(self, params, module_log):
        gateway = MockGateway({'auth/sso-token': {'ssoUrl': 'https://panel.example.com/sso?t=abc'}}, module_log)
        result = SingleSignOn(gateway, module_log=module_log).service_sso(params)

        assert result == {'success': True, 'redirectTo': 'https://panel.example.com/sso?t=abc'}
        assert gateway.calls[0][2] == {
            'email': 'player@example.com',
            'redirectTo': '/game-servers/mc-7',
            'baseUrl': 'https://panel.example.com',
        }

    def test_login_url_never_reaches_module_log(self, params, module_log):
        login_url = 'https://panel.example.com/sso?token=LIVE-LOGIN-TOKEN'
        gateway = MockGateway({'auth/sso-token': {'ssoUrl': login_url}}, module_log)

        result = SingleSignOn(gateway, module_log=module_log).service_sso(params)

        assert result['redirectTo'] == login_url
        assert module_log.entries[-1].action == 'ApiCall'
        logged = json.dumps([entry.to_dict() for entry in module_log.entries], default=str)
        assert 'LIVE-LOGIN-TOKEN' not in logged

    def test_service_sso_nested_url(self, params, module_log):
        gateway = MockGateway({'auth/sso-token': {'data': {'ssoUrl': 'https://panel.example.com/sso?t=x'}}}, module_log)
        assert SingleSignOn(gateway, module_log=module_log).service_sso(params)['redirectTo'].endswith('t=x')

    def test_service_sso_without_server_targets_root(self, module_params, module_log):
        gateway = MockGateway({'auth/sso-token': {'ssoUrl': 'u'}}, module_log)
        SingleSignOn(gateway, module_log=module_log).service_sso(module_params)
        assert gateway.calls[0][2]['redirectTo'] == '/'

    def test_service_sso_falls_back_to_panel(self, params, module_log):
        gateway = MockGateway({'auth/sso-token': ApiFailure(http_status=403, message='SSO disabled')}, module_log)
        result = SingleSignOn(gateway, module_log=module_log).service_sso(params)
        assert result == {'success': True, 'redirectTo': 'https://panel.example.com'}

    def test_service_sso_without_key_skips_token_request(self, params, module_log):
        params['serveraccesshash'] = ''
        gateway = MockGateway({'auth/sso-token': {'ssoUrl': 'u'}}, module_log)
        result = SingleSignOn(gateway, module_log=module_log).service_sso(params)
        assert result == {'success': True, 'redirectTo': 'https://panel.example.com'}
        assert gateway.calls == []

    def test_client_area_login_redirect(self, params, module_log):
        controller, _ = _controller({'auth/sso-token': {'ssoUrl': 'https://panel.example.com/sso?t=abc'}}, module_log)
        assert controller.login_redirect(params) == 'https://panel.example.com/sso?t=abc'

    def test_admin_sso(self, module_log):
        result = SingleSignOn(MockGateway({}, module_log), module_log=module_log).admin_sso(
            {'serverhostname': 'panel.example.com'})
        assert result == {'success': True, 'redirectTo': 'https://panel.example.com/settings'}

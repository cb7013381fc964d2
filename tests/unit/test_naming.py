"""
Unit tests for server identifier lookup and display-name generation.
"""
from types import SimpleNamespace

import pytest

from services.naming import (
    NameContext,
    generate_server_name,
    get_product_name,
    is_placeholder_domain,
    resolve_server_id,
    server_name_for,
)


class TestResolveServerId:

    def test_assigned_ips_first(self):
        params = {'model': {'assignedips': 'mc-1', 'dedicatedip': 'legacy'},
                  'customfields': {'GameCP Server ID': 'field'}}
        assert resolve_server_id(params) == 'mc-1'

    def test_dedicated_ip_second(self):
        params = {'model': {'assignedips': '', 'dedicatedip': 'legacy'},
                  'customfields': {'GameCP Server ID': 'field'}}
        assert resolve_server_id(params) == 'legacy'

    def test_custom_field_last(self):
        params = {'model': {'assignedips': None}, 'customfields': {'GameCP Server ID': ' field '}}
        assert resolve_server_id(params) == 'field'

    def test_model_may_be_an_object(self):
        params = {'model': SimpleNamespace(assignedips='mc-9', dedicatedip='')}
        assert resolve_server_id(params) == 'mc-9'

    def test_nothing_stored(self):
        assert resolve_server_id({}) == ''


class TestGenerateServerName:

    def test_default_template_is_product(self):
        assert generate_server_name('', NameContext(product='Minecraft')) == 'Minecraft'

    def test_all_placeholders(self):
        context = NameContext(product='Valheim', service_id='42', domain='viking.example.com',
                              client_name='Alex Stone')
        name = generate_server_name('{product} #{serviceid} {domain} ({clientname})', context)
        assert name == 'Valheim #42 viking.example.com (Alex Stone)'

    def test_placeholder_domain_is_dropped(self):
        context = NameContext(product='Rust', domain='server-1700000000-42')
        assert generate_server_name('{product} {domain}', context) == 'Rust'

    def test_placeholder_domain_only_template_falls_back(self):
        context = NameContext(service_id='42', domain='server-12-1700000000')
        assert generate_server_name('{domain}', context) == 'Game Server #42'

    def test_empty_result_falls_back(self):
        assert generate_server_name('{domain}', NameContext(service_id='42')) == 'Game Server #42'
        assert generate_server_name('{domain}', NameContext(client_id='7')) == 'Game Server #7'

    @pytest.mark.parametrize('template,context', [
        ('{product} #{serviceid} {domain} ({clientname})',
         NameContext(product='Valheim', service_id='42', domain='viking.example.com', client_name='Alex Stone')),
        ('{product} {domain}', NameContext(product='Rust', domain='server-1700000000-42')),
        ('{domain}', NameContext(service_id='42')),
    ])
    def test_same_input_same_name(self, template, context):
        first = generate_server_name(template, context)
        assert first
        assert generate_server_name(template, context) == first

    @pytest.mark.parametrize('domain,expected', [
        ('server-1700000000-42', True),
        ('server-1-2', True),
        ('server-abc-42', False),
        ('myserver.example.com', False),
        ('', False),
    ])
    def test_is_placeholder_domain(self, domain, expected):
        assert is_placeholder_domain(domain) is expected


class TestProductName:

    def test_from_store(self, make_store):
        store = make_store(products={3: {'name': 'Minecraft Java'}})
        assert get_product_name({'pid': 3}, store) == 'Minecraft Java'

    def test_default_without_store(self):
        assert get_product_name({'pid': 3}) == 'Game Server'

    def test_store_failure_uses_default(self, make_store):
        assert get_product_name({'pid': 3}, make_store(fail=True)) == 'Game Server'

    def test_server_name_for_uses_configoption5(self, make_store, module_params):
        store = make_store(products={3: {'name': 'Minecraft'}})
        module_params['configoption5'] = '{product} for {clientname}'
        assert server_name_for(module_params, store) == 'Minecraft for Alex Stone'

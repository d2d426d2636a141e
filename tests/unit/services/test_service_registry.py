"""
Tests for the service registry and the services wired up by create_app
"""

import pytest
from unittest.mock import Mock

from services.registry import ServiceRegistry, create_service_registry
from services.buyer_service import BuyerService
from services.csv_import_service import CSVImportService


class TestServiceRegistry:
    """Test suite for ServiceRegistry"""

    @pytest.fixture
    def registry(self):
        return create_service_registry()

    def test_register_service_instance(self, registry):
        service_instance = Mock()
        registry.register('test_service', service_instance)

        assert registry.has('test_service')
        assert registry.get('test_service') is service_instance

    def test_factory_is_lazy_and_cached(self, registry):
        factory = Mock(return_value="service_instance")
        registry.register_factory('lazy_service', factory)

        factory.assert_not_called()
        assert registry.get('lazy_service') == "service_instance"
        assert registry.get('lazy_service') == "service_instance"
        factory.assert_called_once()

    def test_dependencies_are_passed_as_kwargs(self, registry):
        registry.register('db_session', 'session')
        registry.register_factory('repo', lambda db_session: ('repo', db_session), dependencies=['db_session'])

        assert registry.get('repo') == ('repo', 'session')

    def test_unknown_service(self, registry):
        with pytest.raises(ValueError) as excinfo:
            registry.get('missing')
        assert "Service 'missing' is not registered" in str(excinfo.value)

    def test_circular_dependency(self, registry):
        registry.register_factory('a', lambda b: 'a', dependencies=['b'])
        registry.register_factory('b', lambda a: 'b', dependencies=['a'])

        with pytest.raises(ValueError) as excinfo:
            registry.get('a')
        assert 'Circular dependency detected: a -> b -> a' in str(excinfo.value)

    def test_reset_service_rebuilds(self, registry):
        factory = Mock(side_effect=['first', 'second'])
        registry.register_factory('svc', factory)

        assert registry.get('svc') == 'first'
        registry.reset_service('svc')
        assert registry.get('svc') == 'second'

    def test_reset_and_list(self, registry):
        registry.register('b', 1)
        registry.register_factory('a', lambda: 2)

        assert registry.list_services() == ['a', 'b']
        registry.reset()
        assert registry.list_services() == []


class TestAppServices:
    """The registry attached to the Flask app"""

    def test_buyer_services_are_registered(self, app):
        for name in ('buyer_repository', 'buyer_history_repository', 'buyer', 'csv_import'):
            assert app.services.has(name)

    def test_services_use_configured_limits(self, app):
        csv_import = app.services.get('csv_import')
        buyer = app.services.get('buyer')

        assert isinstance(csv_import, CSVImportService)
        assert csv_import.max_file_size == app.config['CSV_IMPORT_MAX_FILE_SIZE']
        assert csv_import.max_rows == 1000
        assert isinstance(buyer, BuyerService)
        assert buyer.default_page_size == app.config['BUYERS_PAGE_SIZE']

    def test_services_share_repositories(self, app):
        assert app.services.get('buyer').buyer_repository is app.services.get('buyer_repository')
        assert app.services.get('csv_import').buyer_repository is app.services.get('buyer_repository')

    def test_health_check(self, app):
        response = app.test_client().get('/health')

        assert response.status_code == 200
        assert response.get_json()['database'] == 'connected'

    def test_unknown_route_returns_json(self, app):
        response = app.test_client().get('/no-such-page')

        assert response.status_code == 404
        assert response.get_json() == {'error': 'Page not found'}

"""
Service Registry - Central management of the buyer services
Implements dependency injection and lazy loading patterns
"""
from typing import Dict, Any, Callable, List, Optional


class ServiceRegistry:
    """
    Centralized registry for application services.

    Factories may name other registered services as dependencies; those are
    resolved first and passed to the factory as keyword arguments.
    """

    def __init__(self):
        self._services: Dict[str, Any] = {}
        self._factories: Dict[str, Callable] = {}
        self._dependencies: Dict[str, List[str]] = {}
        self._resolving: List[str] = []

    def register(self, name: str, service: Any) -> None:
        """
        Register a service instance directly.

        Args:
            name: Service identifier
            service: Service instance
        """
        self._services[name] = service

    def register_factory(self, name: str, factory: Callable, dependencies: Optional[List[str]] = None) -> None:
        """
        Register a factory function for lazy service instantiation.

        Args:
            name: Service identifier
            factory: Callable that returns a service instance
            dependencies: Names of services passed to the factory as kwargs
        """
        self._factories[name] = factory
        self._dependencies[name] = list(dependencies or [])

    def get(self, name: str) -> Any:
        """
        Get a service by name. Lazy loads if factory is registered.

        Raises:
            ValueError: If service is not registered or dependencies are circular
        """
        if name in self._services:
            return self._services[name]

        if name not in self._factories:
            raise ValueError(f"Service '{name}' is not registered")

        if name in self._resolving:
            chain = ' -> '.join(self._resolving + [name])
            raise ValueError(f"Circular dependency detected: {chain}")

        self._resolving.append(name)
        try:
            kwargs = {dep: self.get(dep) for dep in self._dependencies.get(name, [])}
            service = self._factories[name](**kwargs)
        finally:
            self._resolving.pop()

        self._services[name] = service
        return service

    def has(self, name: str) -> bool:
        return name in self._services or name in self._factories

    def reset(self) -> None:
        """
        Clear all registered services and factories.
        Useful for testing.
        """
        self._services.clear()
        self._factories.clear()
        self._dependencies.clear()

    def reset_service(self, name: str) -> None:
        """Forget an instantiated service so the next get() rebuilds it"""
        self._services.pop(name, None)

    def list_services(self) -> list:
        all_services = set(self._services.keys()) | set(self._factories.keys())
        return sorted(all_services)


def create_service_registry() -> ServiceRegistry:
    """
    Factory function to create the service registry.
    Buyer services are registered on it in app.create_app.
    """
    return ServiceRegistry()

"""
Service wiring for the CAN link manager.

Builds the adapter gateway, link supervisor and command bridge from a
ConfigManager, hands them out by name and shuts them down newest first.
"""
import logging
from typing import Any, Callable, Dict, Optional

from canlink.config import ConfigManager
from canlink.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Named registry for the link services.

    A service is either a ready object or a zero-argument factory that is
    called the first time the name is looked up. Dropping a service calls
    its ``cleanup()`` if it has one, so clearing the container stops the
    supervisor thread and releases the adapter.

    Attributes:
        _instances: Built services by name, in registration order
        _factories: Pending factories for services not yet built
    """

    def __init__(self):
        self._instances: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}
        logger.debug("ServiceContainer created")

    def register(self, name: str, service: Any, lazy: bool = False) -> None:
        """Add a service under ``name``.

        Args:
            name: Lookup key, e.g. 'link_supervisor'
            service: The service object, or a factory when ``lazy`` is set
            lazy: Defer building until the first ``get(name)``
        """
        self._instances.pop(name, None)
        self._factories.pop(name, None)
        if lazy and callable(service):
            self._factories[name] = service
        else:
            self._instances[name] = service
        logger.debug(f"Registered {name} (lazy={lazy})")

    def get(self, name: str) -> Optional[Any]:
        """Return the service for ``name``, building it if it was registered lazily."""
        if name in self._instances:
            return self._instances[name]
        factory = self._factories.pop(name, None)
        if factory is None:
            logger.warning(f"No service registered as {name}")
            return None
        logger.debug(f"Building lazily registered service {name}")
        self._instances[name] = factory()
        return self._instances[name]

    def has(self, name: str) -> bool:
        return name in self._instances or name in self._factories

    def remove(self, name: str) -> None:
        """Drop ``name``, calling ``cleanup()`` on a built service first."""
        self._factories.pop(name, None)
        service = self._instances.pop(name, None)
        if service is None:
            return
        cleanup = getattr(service, 'cleanup', None)
        if cleanup is not None:
            try:
                cleanup()
            except Exception as e:
                logger.warning(f"Cleanup of {name} failed: {e}", exc_info=True)
        logger.debug(f"Removed {name}")

    def clear(self) -> None:
        """Remove every service, most recently registered first."""
        for name in reversed(list(self._factories) + list(self._instances)):
            self.remove(name)
        logger.info("All link services stopped")

    def initialize_services(self, config: Optional[ConfigManager] = None, driver: Any = None) -> None:
        """Create the gateway, supervisor and bridge from configuration.

        The supervisor thread is not started; call ``start()``.

        Args:
            config: Configuration manager (a default one is built if omitted)
            driver: Optional driver object overriding ``adapter_type``

        Raises:
            ConfigurationError: for an unknown adapter type or channel
        """
        from canlink.adapters.pcan import PcanGateway
        from canlink.adapters.sim import SimDriver
        from canlink.services.command_bridge import CommandBridge
        from canlink.services.link_supervisor import LinkSupervisor

        config = config or ConfigManager()
        can_settings = config.can_settings
        link_settings = config.link_settings

        if driver is None:
            if can_settings.adapter_type == 'sim':
                driver = SimDriver()
            elif can_settings.adapter_type != 'pcan':
                raise ConfigurationError(f"Unknown adapter type: {can_settings.adapter_type}",
                                         setting_name='adapter_type', setting_value=can_settings.adapter_type,
                                         expected="'pcan' or 'sim'")

        gateway = PcanGateway(channel=can_settings.channel, driver=driver,
                              error_text_language=link_settings.error_text_language)
        supervisor = LinkSupervisor(gateway, bitrate_index=can_settings.bitrate_index,
                                    poll_interval=link_settings.poll_interval,
                                    retry_delay=link_settings.retry_delay)
        bridge = CommandBridge(gateway, supervisor.bus_lock)

        self.register('config', config)
        self.register('gateway', gateway)
        self.register('link_supervisor', supervisor)
        self.register('command_bridge', bridge)
        logger.info(f"Registered CAN link services: adapter={can_settings.adapter_type}, "
                    f"channel={can_settings.channel}, bitrate index={supervisor.bitrate_index}")

    def start(self) -> None:
        """Start the link supervisor thread."""
        supervisor = self.get_link_supervisor()
        if supervisor is None:
            raise RuntimeError("Link supervisor not registered; call initialize_services() first")
        if not supervisor.is_alive():
            supervisor.start()

    def get_gateway(self):
        return self.get('gateway')

    def get_link_supervisor(self):
        return self.get('link_supervisor')

    def get_command_bridge(self):
        return self.get('command_bridge')

    def __repr__(self) -> str:
        names = ', '.join(list(self._instances) + list(self._factories))
        return f"ServiceContainer(services=[{names}])"

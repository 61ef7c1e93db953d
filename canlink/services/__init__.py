"""
Service layer for the CAN link manager.

Services:
- LinkSupervisor: Background thread owning the adapter connection lifecycle
- CommandBridge: Frame write/read entry point for other subsystems
- ServiceContainer: Wires the services from configuration
"""

from canlink.services.link_supervisor import LinkState, LinkSupervisor
from canlink.services.command_bridge import CommandBridge
from canlink.services.service_container import ServiceContainer

__all__ = ['LinkState', 'LinkSupervisor', 'CommandBridge', 'ServiceContainer']

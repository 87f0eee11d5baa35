from wa_gateway.transport.base import ClientFactory, MessagingClient

__all__ = ["ClientFactory", "MessagingClient"]

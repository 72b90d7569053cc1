"""Event handlers subscribed to the invoicing event bus."""

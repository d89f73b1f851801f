"""SSV installer (Snapcast voice satellite provisioning, state-driven).

Core design goals:
- Resumable across host reboots (durable progress ledger)
- Idempotent steps with an explicit precondition check
- Generated unit/config files replaced atomically
- Centralized logging
"""

__all__ = []

"""
Shared utilities for Voucher Sentinel.

This package is intentionally small and focused. It provides:

- `shared.config` for environment-based configuration
- `shared.logging` for structlog-based structured logging
- `shared.telegram` for Telegram notifications and report text

The automation core and the command-line front-end both treat `shared/`
as infrastructure code and avoid introducing feature coupling here.
"""

"""
Core module initialization.
Exports configuration and logging utilities.
"""

from storefront.core.config import (
    EnvironmentMode,
    Settings,
    get_admin_emails,
    get_settings,
    parse_email_list,
)

__all__ = [
    "get_settings",
    "get_admin_emails",
    "parse_email_list",
    "Settings",
    "EnvironmentMode",
]

"""SDK version and the User-Agent string sent with every RPC request."""

from __future__ import annotations

from typing import Optional

__version__ = "0.1.0"

USER_AGENT_PRODUCT = "sui-sdk-py"


def user_agent(app: Optional[str] = None) -> str:
    """'sui-sdk-py/0.1.0', or 'myapp/1.2 sui-sdk-py/0.1.0' when `app` is given."""
    ua = f"{USER_AGENT_PRODUCT}/{__version__}"
    return f"{app} {ua}" if app else ua


__all__ = ["__version__", "USER_AGENT_PRODUCT", "user_agent"]

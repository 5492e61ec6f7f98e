"""Control gateway: forwards variable writes to the Nucleares webserver"""
import json
from typing import Any
from logging_config import get_logger
from .client import UpstreamClient
from .errors import ControlError


logger = get_logger(__name__)


def format_control_value(value: Any) -> str:
    """Render a JSON value as the text the webserver expects"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(',', ':'))
    return str(value)


class ControlGateway:
    """Single-shot writes; failures surface to the caller, nothing is retried"""

    def __init__(self, client: UpstreamClient):
        self.client = client

    async def set_variable(self, name: str, value: Any) -> None:
        text = format_control_value(value)
        try:
            await self.client.post_variable(name, text)
        except ControlError as e:
            logger.warning("Variable write failed", variable=name, value=text,
                           status_code=e.status_code, error=str(e), event_type="control_error")
            raise
        logger.info("Variable written", variable=name, value=text, event_type="control_write")

"""Variable discovery from the Nucleares root page"""
import html
import re
import time
from typing import List, Optional, Tuple
from metrics.models import DiscoveryResult
from metrics.registry import VariableRegistry
from logging_config import get_logger, log_discovery
from .client import UpstreamClient, decode_component
from .errors import UpstreamError
from .parser import parse_value


logger = get_logger(__name__)

GET_MARKER = "==== GET ===="
POST_MARKER = "==== POST ===="

# Root page links look like <a href="/?variable=VALVE_M01_OPEN">
_VARIABLE_LINK_RE = re.compile(r'/\?variable=([^"\'<>\s]+)')
_BOLD_LABEL_RE = re.compile(r'<(b|strong)(?:\s[^>]*)?>(.*?)</\1\s*>', re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r'<[^>]+>')


def split_sections(document: str) -> Optional[Tuple[str, Optional[str]]]:
    """Split the root page into its GET section and the text after the POST marker.

    Returns None when there is no GET marker. The POST part is None when the
    page has no POST marker after the GET marker.
    """
    start = document.find(GET_MARKER)
    if start == -1:
        return None
    end = document.find(POST_MARKER, start)
    if end == -1:
        return document[start + len(GET_MARKER):], None
    return document[start + len(GET_MARKER):end], document[end + len(POST_MARKER):]


def extract_get_variables(section: str) -> List[str]:
    """Variable names linked from the GET section, in page order, duplicates kept"""
    return [decode_component(token) for token in _VARIABLE_LINK_RE.findall(section)]


def extract_post_variables(section: str) -> List[str]:
    """Bold labels naming writable variables, in page order"""
    labels = []
    for _, inner in _BOLD_LABEL_RE.findall(section):
        label = html.unescape(_TAG_RE.sub('', inner)).strip()
        if label:
            labels.append(label)
    return labels


class VariableDiscovery:
    """Populates a VariableRegistry from the upstream root page"""

    def __init__(self, client: UpstreamClient, registry: VariableRegistry, probe: bool = True):
        self.client = client
        self.registry = registry
        self.probe = probe

    async def discover(self) -> DiscoveryResult:
        """Run one discovery pass.

        Unreachable upstream and a missing GET marker are logged and leave the
        registry untouched. Errors fetching the root page propagate.
        """
        start_time = time.time()
        result = DiscoveryResult()

        if self.probe and not await self.client.is_alive():
            logger.warning("Nucleares webserver unreachable, skipping discovery",
                           url=self.client.root_url, event_type="discovery_skipped")
            result.reachable = False
            return result

        document = await self.client.fetch_root()

        sections = split_sections(document)
        if sections is None:
            logger.warning(f'Could not find "{GET_MARKER}" section in Nucleares root response',
                           event_type="discovery_skipped")
            return result
        result.get_section_found = True
        get_section, post_section = sections

        for name in extract_get_variables(get_section):
            try:
                await self._register(name)
                result.get_variables.append(name)
            except (UpstreamError, ValueError) as e:
                logger.warning(f'Failed to register Nucleares variable "{name}"',
                               variable=name, error=str(e), event_type="registration_error")
                result.failed.append(name)

        if post_section is not None:
            result.post_variables = extract_post_variables(post_section)
            self.registry.set_post_variables(result.post_variables)

        self.registry.mark_initialised()
        log_discovery(logger, len(self.registry.variables), len(self.registry.post_variables),
                      len(result.failed), time.time() - start_time)
        return result

    async def _register(self, name: str) -> None:
        value_text = await self.client.fetch_variable(name)
        parsed = parse_value(value_text)
        variable = self.registry.register_variable(name, parsed)
        logger.debug("Registered variable", variable=name, metric=variable.metric_name,
                     kind=variable.kind.value, event_type="variable_registered")

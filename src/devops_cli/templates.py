from __future__ import annotations

from collections.abc import Sequence

import jinja2

from .errors import TemplateError
from .models import InstanceRecord

DEFAULT_DISPLAY_TEMPLATE = "{{ tags.Name|default('<unnamed instance>') }} ({{ id }} ({{ state }})"
DEFAULT_COMMAND_TEMPLATE = ("ssh", "{{ private_ip }}")


class InstanceRenderer:
    def __init__(self) -> None:
        self._env = jinja2.Environment(autoescape=False, keep_trailing_newline=False)

    def render(self, template: str, instance: InstanceRecord) -> str:
        try:
            return self._env.from_string(template).render(instance.to_dict())
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Unable to render template `{template}`: {exc}") from exc

    def render_all(self, template: str, instances: Sequence[InstanceRecord]) -> list[str]:
        return [self.render(template, instance) for instance in instances]

    def render_command(self, template: Sequence[str], instance: InstanceRecord) -> list[str]:
        return [self.render(part, instance) for part in template]

import pytest

from devops_cli.errors import TemplateError
from devops_cli.templates import DEFAULT_COMMAND_TEMPLATE, DEFAULT_DISPLAY_TEMPLATE, InstanceRenderer


def test_default_display_template(make_record):
    renderer = InstanceRenderer()
    assert renderer.render(DEFAULT_DISPLAY_TEMPLATE, make_record("i-1", "web-1")) == "web-1 (i-1 (running)"


def test_default_display_template_without_name(make_record):
    rendered = InstanceRenderer().render(DEFAULT_DISPLAY_TEMPLATE, make_record("i-1"))
    assert rendered == "<unnamed instance> (i-1 (running)"


def test_command_template(make_record):
    command = InstanceRenderer().render_command(DEFAULT_COMMAND_TEMPLATE, make_record(private_ip="10.9.8.7"))
    assert command == ["ssh", "10.9.8.7"]


def test_render_all_keeps_order(make_record):
    records = [make_record("i-1", "a"), make_record("i-2", "b")]
    assert InstanceRenderer().render_all("{{ tags.Name }}:{{ availability_zone }}", records) == [
        "a:eu-west-1a",
        "b:eu-west-1a",
    ]


def test_syntax_errors_are_reported(make_record):
    with pytest.raises(TemplateError):
        InstanceRenderer().render("{{ id ", make_record())

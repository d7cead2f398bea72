from __future__ import annotations

from collections.abc import Sequence

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Footer, Input, Label, Static

SELECTED_MARK = "[x]"
UNSELECTED_MARK = "[ ]"


class InstanceSelectApp(App[list[int] | None]):
    """Pick one (or, in multi mode, several) entries; returns their indexes."""

    CSS_PATH = "styles.tcss"
    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("slash", "focus_filter", "Filter"),
        Binding("space", "toggle", "Toggle"),
        Binding("a", "toggle_all", "All/none"),
    ]

    def __init__(self, items: Sequence[str], *, multi: bool = False, prompt: str = "select instances") -> None:
        super().__init__()
        self.items = list(items)
        self.multi = multi
        self.prompt = prompt
        self.visible: list[int] = list(range(len(self.items)))
        self.selected: set[int] = set(self.visible) if multi else set()

    def compose(self) -> ComposeResult:
        yield Label(self.prompt, id="select-prompt")
        yield Input(placeholder="type to filter, enter to return to the list", id="select-filter")
        yield DataTable(id="select-table")
        yield Static("", id="select-status")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#select-table", DataTable)
        table.cursor_type = "row"
        if self.multi:
            table.add_column("", key="mark")
        table.add_column("Instance", key="display")
        self._render_items()
        self.set_focus(table)

    @on(Input.Changed, "#select-filter")
    def on_filter_changed(self, event: Input.Changed) -> None:
        words = event.value.lower().split()
        self.visible = [
            index for index, item in enumerate(self.items) if all(word in item.lower() for word in words)
        ]
        self._render_items()

    @on(Input.Submitted, "#select-filter")
    def on_filter_submitted(self, event: Input.Submitted) -> None:
        self.set_focus(self.query_one("#select-table", DataTable))

    @on(DataTable.RowSelected, "#select-table")
    def on_row_selected(self, event: DataTable.RowSelected) -> None:
        if self.multi:
            self.exit(sorted(self.selected))
            return
        index = self._highlighted()
        if index is not None:
            self.exit([index])

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action in ("toggle", "toggle_all"):
            return self.multi
        return True

    def action_cancel(self) -> None:
        self.exit(None)

    def action_focus_filter(self) -> None:
        self.set_focus(self.query_one("#select-filter", Input))

    def action_toggle(self) -> None:
        index = self._highlighted()
        if not self.multi or index is None:
            return
        self.selected ^= {index}
        self._update_mark(index)

    def action_toggle_all(self) -> None:
        if not self.multi:
            return
        visible = set(self.visible)
        if visible <= self.selected:
            self.selected -= visible
        else:
            self.selected |= visible
        for index in self.visible:
            self._update_mark(index)

    def _highlighted(self) -> int | None:
        table = self.query_one("#select-table", DataTable)
        try:
            row = table.cursor_row
            if row < 0:
                raise IndexError
            return self.visible[row]
        except IndexError:
            return None

    def _render_items(self) -> None:
        table = self.query_one("#select-table", DataTable)
        table.clear(columns=False)
        for index in self.visible:
            if self.multi:
                table.add_row(self._mark(index), self.items[index], key=str(index))
            else:
                table.add_row(self.items[index], key=str(index))
        if self.visible:
            table.move_cursor(row=0, column=0)
        self._update_status()

    def _update_mark(self, index: int) -> None:
        table = self.query_one("#select-table", DataTable)
        table.update_cell(str(index), "mark", self._mark(index))
        self._update_status()

    def _mark(self, index: int) -> str:
        return SELECTED_MARK if index in self.selected else UNSELECTED_MARK

    def _update_status(self) -> None:
        message = f"{len(self.visible)} of {len(self.items)} shown"
        if self.multi:
            message += f", {len(self.selected)} selected"
        self.query_one("#select-status", Static).update(message)


class ConfirmApp(App[bool]):
    CSS_PATH = "styles.tcss"
    CSS = "Screen { align: center middle; }"
    BINDINGS = [
        Binding("escape", "answer(False)", "Cancel"),
        Binding("n", "answer(False)", "No"),
        Binding("y", "answer(True)", "Yes"),
    ]

    def __init__(self, question: str) -> None:
        super().__init__()
        self.question = question

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-modal"):
            yield Label(self.question, id="confirm-question")
            with Horizontal(id="confirm-buttons"):
                yield Button("No", id="confirm-no")
                yield Button("Yes", variant="primary", id="confirm-yes")

    def action_answer(self, answer: bool) -> None:
        self.exit(answer)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        self.exit(event.button.id == "confirm-yes")


def select_items(items: Sequence[str], *, multi: bool = False) -> list[int]:
    """Run the selection UI; cancelling selects nothing."""
    return InstanceSelectApp(items, multi=multi).run() or []


async def confirm_async(question: str) -> bool:
    return bool(await ConfirmApp(question).run_async())

"""reginspect-tui: Interactive register map inspector."""

from __future__ import annotations

import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header

from reginspect import codec
from reginspect.enums import ValueFormat
from reginspect.errors import ConfigError, ProbeError
from reginspect.probe import probe
from reginspect.regmap import Block, Field, Node, Register
from reginspect.target import Target

from .detail import DetailPanel
from .state import AppState
from .tree import RegisterTree

logger = logging.getLogger(__name__)


class ReginspectTuiApp(App):
    """Interactive register map inspector."""

    CSS = """
    #main-container {
        height: 1fr;
    }
    #reg-tree {
        width: 1fr;
        min-width: 30;
        max-width: 50%;
        border-right: solid $accent;
    }
    #detail-panel {
        width: 2fr;
    }
    #register-detail {
        padding: 1;
    }
    #field-detail {
        padding: 1;
    }
    #block-detail {
        padding: 1;
    }
    #root-detail {
        padding: 1;
    }
    """

    BINDINGS = [
        Binding('r', 'probe', 'Probe', show=True),
        Binding('f', 'format', 'Format', show=True),
        Binding('b', 'toggle_bad', 'Bad only', show=True),
        Binding('q', 'quit', 'Quit', show=True),
    ]

    TITLE = 'reginspect-tui'

    def __init__(
        self,
        config_path: str | None,
        target: Target,
        target_str: str = '',
        jobs: int = 1,
    ) -> None:
        super().__init__()
        self.target = target
        self.jobs = jobs
        self.state = AppState(config_path, target_str)
        self._selected: Node | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id='main-container'):
            yield RegisterTree()
            yield DetailPanel(id='detail-panel')
        yield Footer()

    def on_mount(self) -> None:
        self._update_subtitle()

        if self.state.config_path:
            self._load_config(self.state.config_path)

        if self.state.root is not None:
            self._probe()

        self._rebuild_tree()
        self._refresh_detail()

    def on_unmount(self) -> None:
        self.target.close()

    def _update_subtitle(self) -> None:
        config_str = self.state.config_path or '<none>'
        self.sub_title = f'{self.state.target_str}  |  map: {config_str}'

    def _load_config(self, path: str) -> None:
        try:
            self.state.root = codec.load(path)
        except ConfigError as e:
            self.notify(f'Failed to load register map: {e}', severity='error')
            self.state.root = None

    def _probe(self) -> None:
        if self.state.root is None:
            return

        self.state.probe_count += 1

        try:
            result = probe(self.target, self.state.root, jobs=self.jobs)
            self.state.num_failures = 0
            logger.debug('probe %d: %d registers read', self.state.probe_count, result.num_resolved)
        except ProbeError as e:
            self.state.num_failures = len(e.failures)
            self.notify(str(e), severity='warning')

    def _rebuild_tree(self) -> None:
        self._selected = None
        self.query_one(RegisterTree).rebuild(self.state)

    def _update_tree_values(self) -> None:
        self.query_one(RegisterTree).update_values(self.state)

    def _refresh_detail(self) -> None:
        panel = self.query_one(DetailPanel)
        node = self._selected
        if isinstance(node, Field):
            panel.set_field(node, self.state.value_format)
        elif isinstance(node, Register):
            panel.set_register(node, self.state.value_format)
        elif isinstance(node, Block):
            panel.set_block(node)
        else:
            panel.set_root(self.state)

    # --- Event handlers ---

    def on_register_tree_node_selected(self, event: RegisterTree.NodeSelected) -> None:
        self._selected = event.node
        self._refresh_detail()

    def on_register_tree_nothing_selected(self, event: RegisterTree.NothingSelected) -> None:
        self._selected = None
        self._refresh_detail()

    # --- Actions ---

    def action_probe(self) -> None:
        if self.state.root is None:
            self.notify('No register map loaded', severity='warning')
            return

        self._probe()

        # The set of bad nodes may have changed
        if self.state.only_bad:
            self._rebuild_tree()
        else:
            self._update_tree_values()
        self._refresh_detail()

    def action_format(self) -> None:
        if self.state.value_format == ValueFormat.HEX:
            self.state.value_format = ValueFormat.DEC
        elif self.state.value_format == ValueFormat.DEC:
            self.state.value_format = ValueFormat.BIN
        else:
            self.state.value_format = ValueFormat.HEX
        self.notify(f'Format: {self.state.value_format.value}')
        self._update_tree_values()
        self._refresh_detail()

    def action_toggle_bad(self) -> None:
        self.state.only_bad = not self.state.only_bad
        self.notify('Showing anomalies only' if self.state.only_bad else 'Showing all')
        self._rebuild_tree()
        self._refresh_detail()

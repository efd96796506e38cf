"""Left-pane register tree widget for reginspect-tui."""

from __future__ import annotations

from textual.message import Message
from textual.widgets import Tree
from textual.widgets._tree import TreeNode

from reginspect.regmap import Block, Node

from .state import AppState
from .types import node_label


class RegisterTree(Tree):
    """Left pane: hierarchical block/register/field tree."""

    class NodeSelected(Message):
        def __init__(self, node: Node) -> None:
            super().__init__()
            self.node = node

    class NothingSelected(Message):
        pass

    def __init__(self) -> None:
        super().__init__('Registers', id='reg-tree')
        self.app_state: AppState | None = None
        self._node_pairs: list[tuple[Node, TreeNode]] = []

    def _make_root_label(self, state: AppState) -> str:
        root_label = state.target_str or 'Registers'
        if state.root is not None and state.root.name:
            root_label += f'  {state.root.name}'
        return root_label

    def _add_children(self, parent: TreeNode, node: Node, state: AppState) -> None:
        for child in node.children():
            if state.only_bad and not child.is_bad():
                continue

            label = node_label(child, state.value_format)

            if child.children():
                tnode = parent.add(label, data=child)
                self._add_children(tnode, child, state)
                # Fields collapsed by default
                if isinstance(child, Block):
                    tnode.expand()
            else:
                tnode = parent.add_leaf(label, data=child)

            self._node_pairs.append((child, tnode))

    def rebuild(self, state: AppState) -> None:
        self.app_state = state
        self.clear()
        self._node_pairs.clear()

        if state.root is None:
            self.root.add_leaf('No register map loaded.')
            return

        self.root.set_label(self._make_root_label(state))
        self._add_children(self.root, state.root, state)

        if state.only_bad and not self._node_pairs:
            self.root.add_leaf('No anomalies.')

        self.root.expand()

    def update_values(self, state: AppState) -> None:
        """Update tree labels in-place after a probe or format change."""
        self.app_state = state
        for node, tnode in self._node_pairs:
            tnode.set_label(node_label(node, state.value_format))

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        data = event.node.data
        if data is None:
            self.post_message(self.NothingSelected())
        else:
            self.post_message(self.NodeSelected(data))

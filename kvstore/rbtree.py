"""Red-black tree key/value store ordered by key."""

from __future__ import annotations

from collections.abc import Iterator
from enum import IntEnum


class Color(IntEnum):
    RED = 1
    BLACK = 2


class _Node:
    __slots__ = ("key", "value", "color", "left", "right", "parent")

    def __init__(self, key, value, color: Color, nil: _Node | None) -> None:
        self.key = key
        self.value = value
        self.color = color
        self.left = nil if nil is not None else self
        self.right = nil if nil is not None else self
        self.parent = nil if nil is not None else self


class RBTreeStore:
    """Key/value store kept in a red-black tree with a shared sentinel."""

    def __init__(self) -> None:
        self._nil = _Node(None, None, Color.BLACK, None)
        self._root = self._nil
        self._size = 0

    # -- tree primitives -------------------------------------------------

    def _minimum(self, node: _Node) -> _Node:
        while node.left is not self._nil:
            node = node.left
        return node

    def _rotate_left(self, x: _Node) -> None:
        y = x.right
        x.right = y.left
        if y.left is not self._nil:
            y.left.parent = x
        y.parent = x.parent
        if x.parent is self._nil:
            self._root = y
        elif x is x.parent.left:
            x.parent.left = y
        else:
            x.parent.right = y
        y.left = x
        x.parent = y

    def _rotate_right(self, y: _Node) -> None:
        x = y.left
        y.left = x.right
        if x.right is not self._nil:
            x.right.parent = y
        x.parent = y.parent
        if y.parent is self._nil:
            self._root = x
        elif y is y.parent.right:
            y.parent.right = x
        else:
            y.parent.left = x
        x.right = y
        y.parent = x

    def _insert_fixup(self, z: _Node) -> None:
        while z.parent.color is Color.RED:
            grand = z.parent.parent
            if z.parent is grand.left:
                uncle = grand.right
                if uncle.color is Color.RED:
                    z.parent.color = Color.BLACK
                    uncle.color = Color.BLACK
                    grand.color = Color.RED
                    z = grand
                else:
                    if z is z.parent.right:
                        z = z.parent
                        self._rotate_left(z)
                    z.parent.color = Color.BLACK
                    z.parent.parent.color = Color.RED
                    self._rotate_right(z.parent.parent)
            else:
                uncle = grand.left
                if uncle.color is Color.RED:
                    z.parent.color = Color.BLACK
                    uncle.color = Color.BLACK
                    grand.color = Color.RED
                    z = grand
                else:
                    if z is z.parent.left:
                        z = z.parent
                        self._rotate_right(z)
                    z.parent.color = Color.BLACK
                    z.parent.parent.color = Color.RED
                    self._rotate_left(z.parent.parent)
        self._root.color = Color.BLACK

    def _delete_fixup(self, x: _Node) -> None:
        while x is not self._root and x.color is Color.BLACK:
            if x is x.parent.left:
                w = x.parent.right
                if w.color is Color.RED:
                    w.color = Color.BLACK
                    x.parent.color = Color.RED
                    self._rotate_left(x.parent)
                    w = x.parent.right
                if w.left.color is Color.BLACK and w.right.color is Color.BLACK:
                    w.color = Color.RED
                    x = x.parent
                else:
                    if w.right.color is Color.BLACK:
                        w.left.color = Color.BLACK
                        w.color = Color.RED
                        self._rotate_right(w)
                        w = x.parent.right
                    w.color = x.parent.color
                    x.parent.color = Color.BLACK
                    w.right.color = Color.BLACK
                    self._rotate_left(x.parent)
                    x = self._root
            else:
                w = x.parent.left
                if w.color is Color.RED:
                    w.color = Color.BLACK
                    x.parent.color = Color.RED
                    self._rotate_right(x.parent)
                    w = x.parent.left
                if w.left.color is Color.BLACK and w.right.color is Color.BLACK:
                    w.color = Color.RED
                    x = x.parent
                else:
                    if w.left.color is Color.BLACK:
                        w.right.color = Color.BLACK
                        w.color = Color.RED
                        self._rotate_left(w)
                        w = x.parent.left
                    w.color = x.parent.color
                    x.parent.color = Color.BLACK
                    w.left.color = Color.BLACK
                    self._rotate_right(x.parent)
                    x = self._root
        x.color = Color.BLACK

    def _remove(self, z: _Node) -> None:
        nil = self._nil
        y = z if z.left is nil or z.right is nil else self._minimum(z.right)
        x = y.left if y.left is not nil else y.right
        x.parent = y.parent
        if y.parent is nil:
            self._root = x
        elif y is y.parent.left:
            y.parent.left = x
        else:
            y.parent.right = x
        if y is not z:
            z.key, z.value = y.key, y.value
        if y.color is Color.BLACK:
            self._delete_fixup(x)

    def _search(self, key: str) -> _Node | None:
        node = self._root
        while node is not self._nil:
            if key < node.key:
                node = node.left
            elif key > node.key:
                node = node.right
            else:
                return node
        return None

    # -- store interface -------------------------------------------------

    def set(self, key: str, value: str) -> bool:
        """Store ``value`` under a new ``key``; return False if it exists."""
        parent = self._nil
        node = self._root
        while node is not self._nil:
            parent = node
            if key < node.key:
                node = node.left
            elif key > node.key:
                node = node.right
            else:
                return False
        z = _Node(key, value, Color.RED, self._nil)
        z.parent = parent
        if parent is self._nil:
            self._root = z
        elif key < parent.key:
            parent.left = z
        else:
            parent.right = z
        self._insert_fixup(z)
        self._size += 1
        return True

    def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        node = self._search(key)
        return None if node is None else node.value

    def delete(self, key: str) -> bool:
        """Remove ``key``; return False if it was not stored."""
        node = self._search(key)
        if node is None:
            return False
        self._remove(node)
        self._size -= 1
        return True

    def modify(self, key: str, value: str) -> bool:
        """Replace the value of an existing ``key``; return False if absent."""
        node = self._search(key)
        if node is None:
            return False
        node.value = value
        return True

    def exists(self, key: str) -> bool:
        """Return whether ``key`` is stored."""
        return self._search(key) is not None

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield ``(key, value)`` pairs in ascending key order."""
        stack: list[_Node] = []
        node = self._root
        while stack or node is not self._nil:
            while node is not self._nil:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.key, node.value
            node = node.right

    def check_invariants(self) -> int:
        """Verify the red-black properties and return the black height.

        Raises ValueError describing the first violation found.
        """
        if self._nil.color is not Color.BLACK:
            raise ValueError("sentinel is not black")
        if self._root.color is not Color.BLACK:
            raise ValueError("root is not black")
        if self._root is not self._nil and self._root.parent is not self._nil:
            raise ValueError("root has a parent")

        def walk(node: _Node, low: str | None, high: str | None) -> int:
            if node is self._nil:
                return 1
            if (low is not None and node.key <= low) or (
                high is not None and node.key >= high
            ):
                raise ValueError(f"key {node.key!r} is out of order")
            for child in (node.left, node.right):
                if child is not self._nil and child.parent is not node:
                    raise ValueError(f"broken parent link below {node.key!r}")
            if node.color is Color.RED and Color.RED in (
                node.left.color,
                node.right.color,
            ):
                raise ValueError(f"red node {node.key!r} has a red child")
            left = walk(node.left, low, node.key)
            right = walk(node.right, node.key, high)
            if left != right:
                raise ValueError(f"unequal black heights below {node.key!r}")
            return left + (1 if node.color is Color.BLACK else 0)

        height = walk(self._root, None, None)
        count = sum(1 for _ in self.items())
        if count != self._size:
            raise ValueError(f"size {self._size} does not match {count} nodes")
        return height

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def __iter__(self) -> Iterator[str]:
        return (key for key, _ in self.items())
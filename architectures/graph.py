# architectures/graph.py
import copy

from architectures.node import Layer, layer_from_dict


class GraphNode:
    """
    Container node of a layer graph.

    A container owns its children exclusively: a child is either a layer
    descriptor or another container. Subclasses decide how the children are
    composed when the graph is executed.
    """
    kind = "node"

    def __init__(self, children=None, name=None):
        self.name = name
        self.owner = None
        self.children = []
        for child in children or []:
            self.add(child)

    def add(self, child):
        if not isinstance(child, (Layer, GraphNode)):
            raise TypeError(f"Cannot add {type(child).__name__} to a {self.kind} node")
        if isinstance(child, GraphNode):
            if child.owner is not None:
                raise ValueError(f"{child.kind} node {child.name!r} already belongs to another node")
            node = self
            while node is not None:
                if node is child:
                    raise ValueError("A node cannot contain itself")
                node = node.owner
            child.owner = self
        elif any(child is c for c in self.children):
            raise ValueError(f"{child!r} is already owned by this node")
        self.children.append(child)
        return child

    def __iter__(self):
        return iter(self.children)

    def __len__(self):
        return len(self.children)

    def __getitem__(self, idx):
        return self.children[idx]

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self.name == other.name and self.children == other.children

    def layers(self):
        """
        Depth-first walk over the layer descriptors of the subtree.
        """
        for child in self.children:
            if isinstance(child, GraphNode):
                yield from child.layers()
            else:
                yield child

    def clone(self):
        """
        Return a deep copy of the subtree, detached from any owner.
        """
        # map the owner to None so the copy does not drag the parent along
        return copy.deepcopy(self, {id(self.owner): None})

    def to_dict(self):
        return {
            "kind": self.kind,
            "name": self.name,
            "children": [c.to_dict() for c in self.children],
        }

    def _repr_lines(self, indent):
        pad = "  " * indent
        label = f"{self.kind}" + (f"[{self.name}]" if self.name else "")
        lines = [f"{pad}{label}:"]
        for child in self.children:
            if isinstance(child, GraphNode):
                lines.extend(child._repr_lines(indent + 1))
            else:
                lines.append(f"{pad}  {child!r}")
        return lines

    def __repr__(self):
        return "\n".join(self._repr_lines(0))


class Sequential(GraphNode):
    """Children are applied one after another."""
    kind = "sequential"


class AddMerge(GraphNode):
    """Children are parallel branches fed the same input; outputs are summed."""
    kind = "add"


# root of a built network
LayerGraph = Sequential

NODE_TYPES = {cls.kind: cls for cls in (Sequential, AddMerge)}


def graph_from_dict(data):
    """
    Rebuild a graph (or a single layer) from the output of `to_dict`.
    """
    if "op_type" in data:
        return layer_from_dict(data)
    cls = NODE_TYPES[data["kind"]]
    return cls([graph_from_dict(c) for c in data["children"]], name=data.get("name"))

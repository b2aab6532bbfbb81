"""Data model shared by the robot description parsers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Union

import numpy as np

from robodesc.body import Body, PTransform
from robodesc.joint import Joint


class MaterialType(Enum):
    NONE = 0
    COLOR = 1
    TEXTURE = 2


@dataclass(frozen=True)
class Material:
    """A visual material: either an RGBA color or a texture file."""

    type: MaterialType = MaterialType.NONE
    color: Optional[tuple[float, float, float, float]] = None
    texture: Optional[str] = None


class GeometryType(Enum):
    MESH = 0
    BOX = 1
    CYLINDER = 2
    SPHERE = 3
    SUPERELLIPSOID = 4
    UNKNOWN = 5


@dataclass(eq=False)
class Mesh:
    filename: str = ""
    scale: float = 1.0
    scale_v: np.ndarray = field(default_factory=lambda: np.ones(3))

    def __post_init__(self) -> None:
        self.scale = float(self.scale)
        self.scale_v = np.array(self.scale_v, dtype=float).reshape(3)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mesh):
            return NotImplemented
        return bool(
            self.filename == other.filename
            and self.scale == other.scale
            and np.array_equal(self.scale_v, other.scale_v)
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass(eq=False)
class Box:
    size: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.size = np.array(self.size, dtype=float).reshape(3)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Box):
            return NotImplemented
        return bool(np.array_equal(self.size, other.size))

    __hash__ = None  # type: ignore[assignment]


@dataclass
class Cylinder:
    radius: float = 0.0
    length: float = 0.0


@dataclass
class Sphere:
    radius: float = 0.0


@dataclass(eq=False)
class Superellipsoid:
    size: np.ndarray = field(default_factory=lambda: np.zeros(3))
    epsilon1: float = 1.0
    epsilon2: float = 1.0

    def __post_init__(self) -> None:
        self.size = np.array(self.size, dtype=float).reshape(3)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Superellipsoid):
            return NotImplemented
        return bool(
            np.array_equal(self.size, other.size)
            and self.epsilon1 == other.epsilon1
            and self.epsilon2 == other.epsilon2
        )

    __hash__ = None  # type: ignore[assignment]


GeometryData = Union[Mesh, Box, Cylinder, Sphere, Superellipsoid]


@dataclass
class Geometry:
    type: GeometryType = GeometryType.UNKNOWN
    data: Optional[GeometryData] = None


@dataclass
class Visual:
    """A visual or collision element attached to a link."""

    name: str = ""
    origin: PTransform = field(default_factory=PTransform.identity)
    geometry: Geometry = field(default_factory=Geometry)
    material: Material = field(default_factory=Material)


@dataclass
class Limits:
    """Per-joint limits, keyed by joint name."""

    lower: dict[str, list[float]] = field(default_factory=dict)
    upper: dict[str, list[float]] = field(default_factory=dict)
    velocity: dict[str, list[float]] = field(default_factory=dict)
    torque: dict[str, list[float]] = field(default_factory=dict)


@dataclass
class ParserParameters:
    """Options controlling how a robot description is turned into a model."""

    fixed: bool = True
    filtered_links: list[str] = field(default_factory=list)
    transform_inertia: bool = True
    base_link: str = ""
    remove_virtual_links: bool = True
    spherical_suffix: str = "_spherical"
    remove_filtered_links: bool = True


class _Arc(NamedTuple):
    parent: str
    parent_transform: PTransform
    child: str
    child_transform: PTransform
    joint: str


class RobotGraph:
    """Bodies and joints of a robot and the way joints connect bodies."""

    def __init__(self) -> None:
        self.bodies: dict[str, Body] = {}
        self.joints: dict[str, Joint] = {}
        self.arcs: list[_Arc] = []

    def add_body(self, body: Body) -> None:
        if body.name in self.bodies:
            raise ValueError(f"Body name {body.name!r} already exists")
        self.bodies[body.name] = body

    def add_joint(self, joint: Joint) -> None:
        if joint.name in self.joints:
            raise ValueError(f"Joint name {joint.name!r} already exists")
        self.joints[joint.name] = joint

    def link_bodies(
        self,
        parent: str,
        parent_transform: PTransform,
        child: str,
        child_transform: PTransform,
        joint_name: str,
    ) -> None:
        """Connect parent and child bodies through an already added joint."""
        for body_name in (parent, child):
            if body_name not in self.bodies:
                raise ValueError(f"Unknown body {body_name!r}")
        if joint_name not in self.joints:
            raise ValueError(f"Unknown joint {joint_name!r}")
        self.arcs.append(_Arc(parent, parent_transform, child, child_transform, joint_name))


@dataclass
class ParserResult:
    """Everything read from a robot description."""

    name: str = ""
    graph: RobotGraph = field(default_factory=RobotGraph)
    limits: Limits = field(default_factory=Limits)
    visual: dict[str, list[Visual]] = field(default_factory=dict)
    collision: dict[str, list[Visual]] = field(default_factory=dict)
    base_link: str = ""
    fixed: bool = True
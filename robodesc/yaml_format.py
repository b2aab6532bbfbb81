"""Reading robot models from YAML robot descriptions."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional, Sequence

import numpy as np
import yaml

from robodesc.body import Body, PTransform, inertia_to_origin, rot_x, rot_y, rot_z
from robodesc.joint import Joint, JointType
from robodesc.model import (
    Box,
    Cylinder,
    Geometry,
    GeometryType,
    Material,
    MaterialType,
    Mesh,
    ParserParameters,
    ParserResult,
    Sphere,
    Superellipsoid,
    Visual,
)

_log = logging.getLogger(__name__)

_MISSING: Any = object()

_JOINT_TYPES = {
    "ball": JointType.SPHERICAL,
    "continuous": JointType.REV,
    "fixed": JointType.FIXED,
    "free": JointType.FREE,
    "prismatic": JointType.PRISM,
    "revolute": JointType.REV,
    "spherical": JointType.SPHERICAL,
}

_TRUE_WORDS = {"true", "yes", "on", "y"}
_FALSE_WORDS = {"false", "no", "off", "n"}


def _get(node: Any, key: str) -> Any:
    """Child of a mapping node, or the missing marker."""
    if isinstance(node, dict):
        return node.get(key, _MISSING)
    return _MISSING


def _present(value: Any) -> bool:
    return value is not _MISSING


def _float(value: Any, what: str) -> float:
    if value is _MISSING or value is None or isinstance(value, bool):
        raise ValueError(f"YAML: expected a number for {what}")
    if not isinstance(value, (int, float, str)):
        raise ValueError(f"YAML: expected a number for {what}")
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"YAML: expected a number for {what}") from exc


def _float_or(value: Any, default: float) -> float:
    try:
        return _float(value, "")
    except ValueError:
        return default


def _float_list(value: Any, what: str) -> list[float]:
    if not isinstance(value, list):
        raise ValueError(f"YAML: expected a list of numbers for {what}")
    return [_float(item, what) for item in value]


def _float_list_or(value: Any, default: Sequence[float]) -> list[float]:
    try:
        return _float_list(value, "")
    except ValueError:
        return list(default)


def _bool(value: Any, what: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"YAML: expected a boolean for {what}")


def _bool_or(value: Any, default: bool) -> bool:
    try:
        return _bool(value, "")
    except ValueError:
        return default


def _str(value: Any, what: str) -> str:
    if value is _MISSING or value is None or isinstance(value, (dict, list)):
        raise ValueError(f"YAML: expected a string for {what}")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _str_or(value: Any, default: str) -> str:
    try:
        return _str(value, "")
    except ValueError:
        return default


def matrix_from_rpy(r: float, p: float, y: float) -> np.ndarray:
    """Rotation matrix (frame convention) of the X, then Y, then Z angle-axis product."""
    return rot_z(y) @ rot_y(p) @ rot_x(r)


def _read_mesh(node: Any) -> Mesh:
    try:
        filename = _str(_get(node, "filename"), "filename")
    except ValueError as exc:
        raise ValueError("YAML: a mesh geometry requires a filename field.") from exc
    scale = _float_list_or(_get(node, "scale"), [1.0])
    if len(scale) == 3:
        return Mesh(filename, scale[2], scale)
    if len(scale) != 1:
        raise ValueError(f"YAML: mesh scale must have 1 or 3 components, got {len(scale)}")
    return Mesh(filename, scale[0], [scale[0]] * 3)


def _read_size(node: Any) -> list[float]:
    size = _float_list(_get(node, "size"), "size")
    if len(size) != 3:
        raise ValueError("YAML: size should have 3 components (x, y, z)")
    return size


def _read_box(node: Any) -> Box:
    try:
        return Box(_read_size(node))
    except ValueError as exc:
        raise ValueError("YAML: a box geometry requires a size field.") from exc


def _read_cylinder(node: Any) -> Cylinder:
    try:
        return Cylinder(
            _float(_get(node, "radius"), "radius"), _float(_get(node, "length"), "length")
        )
    except ValueError as exc:
        raise ValueError(
            "YAML: a cylinder geometry requires radius and length fields."
        ) from exc


def _read_sphere(node: Any) -> Sphere:
    try:
        return Sphere(_float(_get(node, "radius"), "radius"))
    except ValueError as exc:
        raise ValueError("YAML: a sphere geometry requires a radius field.") from exc


def _read_superellipsoid(node: Any) -> Superellipsoid:
    try:
        return Superellipsoid(
            _read_size(node),
            _float(_get(node, "epsilon1"), "epsilon1"),
            _float(_get(node, "epsilon2"), "epsilon2"),
        )
    except ValueError as exc:
        raise ValueError(
            "YAML: a superellipsoid geometry requires size, epsilon1 and epsilon2 fields."
        ) from exc


_GEOMETRY_READERS: dict[str, tuple[GeometryType, Callable[[Any], Any]]] = {
    "mesh": (GeometryType.MESH, _read_mesh),
    "box": (GeometryType.BOX, _read_box),
    "cylinder": (GeometryType.CYLINDER, _read_cylinder),
    "sphere": (GeometryType.SPHERE, _read_sphere),
    "superellipsoid": (GeometryType.SUPERELLIPSOID, _read_superellipsoid),
}


class _YamlReader:
    """Walks a loaded YAML document and fills a parser result."""

    def __init__(self, params: ParserParameters) -> None:
        self.params = params
        self.result = ParserResult(fixed=params.fixed)
        self.materials: dict[str, Material] = {}
        self.removed_links: set[str] = set()
        self.fixed_links: set[str] = set()
        self.link_idx = 1
        self.joint_idx = 1
        self.degrees = False
        self.base_link = ""

    def read(self, config: Any) -> ParserResult:
        robot = _get(config, "robot")
        if not _present(robot):
            raise ValueError("YAML: missing 'robot' root element")
        self.result.name = _str(_get(robot, "name"), "robot->name")

        for material in self._items(_get(robot, "materials")):
            name = _str_or(_get(material, "name"), "")
            if name:
                base = self.materials.get(name, Material())
                self.materials[name] = self._material(material, base)

        links = _get(robot, "links")
        if not _present(links):
            raise ValueError("YAML: missing 'robot->links' element")
        degrees = _get(robot, "anglesInDegrees")
        if not _present(degrees):
            raise ValueError("YAML: missing 'robot->anglesInDegrees: true/false' element")
        self.degrees = _bool(degrees, "robot->anglesInDegrees")

        for link in self._items(links):
            self._link(link)

        joints = _get(robot, "joints")
        if not _present(joints):
            raise ValueError("YAML: missing 'robot->joints' element")
        for joint in self._items(joints):
            self._joint(joint)

        if self.params.base_link:
            self.base_link = self.params.base_link
        if self.base_link not in self.result.graph.bodies:
            raise ValueError(f"YAML: base link {self.base_link!r} is not a body of the robot")
        self.result.base_link = self.base_link
        return self.result

    @staticmethod
    def _items(node: Any) -> list[Any]:
        return node if isinstance(node, list) else []

    def _frame(self, frame: Any, name: str) -> tuple[np.ndarray, np.ndarray]:
        xyz = np.zeros(3)
        rpy = np.zeros(3)
        if not _present(frame):
            return xyz, rpy
        xyz_node = _get(frame, "xyz")
        if _present(xyz_node):
            values = _float_list(xyz_node, f"{name}->frame->xyz")
            if len(values) != 3:
                raise ValueError(f"YAML: Invalid array size ({name}->frame->xyz)")
            xyz = np.array(values)
        rpy_node = _get(frame, "rpy")
        if _present(rpy_node):
            values = _float_list(rpy_node, f"{name}->frame->rpy")
            if len(values) != 3:
                raise ValueError(f"YAML: Invalid array size ({name}->frame->rpy)")
            rpy = np.array(values)
            if _bool_or(_get(frame, "anglesInDegrees"), self.degrees):
                rpy = rpy * (math.pi / 180.0)
        return xyz, rpy

    @staticmethod
    def _inertia(node: Any) -> np.ndarray:
        if not _present(node):
            return np.eye(3)
        ixx = _float_or(_get(node, "Ixx"), 1.0)
        iyy = _float_or(_get(node, "Iyy"), 1.0)
        izz = _float_or(_get(node, "Izz"), 1.0)
        iyz = _float_or(_get(node, "Iyz"), 0.0)
        ixz = _float_or(_get(node, "Ixz"), 0.0)
        ixy = _float_or(_get(node, "Ixy"), 0.0)
        return np.array([[ixx, ixy, ixz], [ixy, iyy, iyz], [ixz, iyz, izz]])

    def _inertial(self, node: Any, name: str) -> tuple[float, np.ndarray, np.ndarray]:
        if not _present(node):
            return 0.0, np.zeros(3), np.zeros((3, 3))
        mass = _float_or(_get(node, "mass"), 0.0)
        xyz, rpy = self._frame(_get(node, "frame"), name)
        inertia = self._inertia(_get(node, "inertia"))
        if self.params.transform_inertia:
            inertia = inertia_to_origin(inertia, mass, xyz, matrix_from_rpy(*rpy))
        return mass, xyz, inertia

    def _material(self, node: Any, base: Material) -> Material:
        name = _str_or(_get(node, "name"), "")
        if not name:
            return base
        out = self.materials.get(name, base)
        color = _get(node, "color")
        if _present(color):
            rgba = _float_list(_get(color, "rgba"), f"material {name} rgba")
            if len(rgba) != 4:
                _log.warning(
                    "YAML: Invalid rgba size in color element (%d) in material %s, "
                    "this material will be ignored",
                    len(rgba),
                    name,
                )
                return out
            return Material(MaterialType.COLOR, color=tuple(rgba))
        texture = _get(node, "texture")
        if _present(texture):
            filename = _str_or(_get(texture, "filename"), "")
            if not filename:
                _log.warning(
                    "YAML: Empty filename in texture element in material %s, "
                    "this material will be ignored",
                    name,
                )
                return out
            return Material(MaterialType.TEXTURE, texture=filename)
        _log.warning("YAML: material %s has no color or texture element, it will be ignored", name)
        return out

    @staticmethod
    def _geometry(node: Any) -> Optional[Geometry]:
        if not isinstance(node, dict):
            return None
        geometry: Optional[Geometry] = None
        for key, value in node.items():
            kind = _str_or(key, "")
            reader = _GEOMETRY_READERS.get(kind)
            if reader is None:
                raise ValueError(
                    f"YAML: unkown geometry type '{kind}'. Supported geometries are mesh, "
                    "box, cylinder, sphere and superellipsoid."
                )
            geometry_type, build = reader
            geometry = Geometry(geometry_type, build(value))
        return geometry

    def _visuals(self, node: Any, target: dict[str, list[Visual]], link_name: str) -> None:
        for item in self._items(node):
            name = _str_or(_get(item, "name"), "")
            xyz, rpy = self._frame(_get(item, "frame"), name)
            material = self._material(_get(item, "material"), Material())
            geometry = self._geometry(_get(item, "geometry"))
            if geometry is not None:
                visual = Visual(name, PTransform(matrix_from_rpy(*rpy), xyz), geometry, material)
                target.setdefault(link_name, []).append(visual)

    def _link(self, node: Any) -> None:
        name = _str_or(_get(node, "name"), f"link{self.link_idx}")
        inertial = _get(node, "inertial")
        if self.params.remove_virtual_links and not _present(inertial):
            self.removed_links.add(name)
            return
        if name in self.params.filtered_links:
            if self.params.remove_filtered_links:
                self.removed_links.add(name)
                return
            self.fixed_links.add(name)
        if not self.base_link:
            self.base_link = name

        mass, com, inertia = self._inertial(inertial, name)
        self.result.graph.add_body(Body.from_com(mass, com, inertia, name))
        self._visuals(_get(node, "visual"), self.result.visual, name)
        self._visuals(_get(node, "collision"), self.result.collision, name)
        self.link_idx += 1

    def _joint_type(self, node: Any, name: str, force_fixed: bool) -> tuple[JointType, bool]:
        if force_fixed:
            return JointType.FIXED, False
        if not _present(node):
            return JointType.REV, False
        type_name = _str(node, f"{name}->type")
        if type_name == "floating":
            type_name = "spherical" if name.endswith(self.params.spherical_suffix) else "free"
        joint_type = _JOINT_TYPES.get(type_name)
        if joint_type is None:
            raise ValueError(
                f"YAML: unkown joint type {type_name} ({name}). Possible values are: "
                + ",".join(_JOINT_TYPES)
            )
        return joint_type, type_name == "continuous"

    @staticmethod
    def _axis(node: Any, name: str) -> np.ndarray:
        if not _present(node):
            return np.array([0.0, 0.0, 1.0])
        values = _float_list(node, f"{name}->axis")
        if len(values) != 3:
            raise ValueError(f"YAML: Invalid array size ({name}->axis)")
        return np.array(values)

    def _limits(self, node: Any, name: str, joint: Joint, is_continuous: bool) -> None:
        dof = joint.dof
        lower = [-math.inf] * dof
        upper = [math.inf] * dof
        effort = [math.inf] * dof
        velocity = [math.inf] * dof
        if _present(node):
            if dof > 1:
                if not is_continuous:
                    lower = _float_list_or(_get(node, "lower"), lower)
                    upper = _float_list_or(_get(node, "upper"), upper)
                effort = _float_list_or(_get(node, "effort"), effort)
                velocity = _float_list_or(_get(node, "velocity"), velocity)
            elif dof == 1:
                if not is_continuous:
                    lower[0] = _float_or(_get(node, "lower"), -math.inf)
                    upper[0] = _float_or(_get(node, "upper"), math.inf)
                effort[0] = _float_or(_get(node, "effort"), math.inf)
                velocity[0] = _float_or(_get(node, "velocity"), math.inf)
            for label, limit in (
                ("lower", lower),
                ("upper", upper),
                ("effort", effort),
                ("velocity", velocity),
            ):
                if len(limit) != dof:
                    _log.warning(
                        "YAML: joint %s limit for %s: size missmatch, expected: %d, got: %d",
                        label,
                        name,
                        dof,
                        len(limit),
                    )
            if _bool_or(_get(node, "anglesInDegrees"), self.degrees):
                scale = math.pi / 180.0
                lower = [v * scale for v in lower]
                upper = [v * scale for v in upper]
                velocity = [v * scale for v in velocity]
        limits = self.result.limits
        limits.lower[name] = lower
        limits.upper[name] = upper
        limits.torque[name] = effort
        limits.velocity[name] = velocity

    def _joint(self, node: Any) -> None:
        name = _str_or(_get(node, "name"), f"joint{self.joint_idx}")
        parent = _str_or(_get(node, "parent"), f"link{self.joint_idx}")
        child = _str_or(_get(node, "child"), f"link{self.joint_idx + 1}")
        if child in self.removed_links or parent in self.removed_links:
            return
        joint_type, is_continuous = self._joint_type(
            _get(node, "type"), name, child in self.fixed_links
        )
        axis = self._axis(_get(node, "axis"), name)
        xyz, rpy = self._frame(_get(node, "frame"), name)
        joint = Joint(joint_type, axis, True, name)
        self._limits(_get(node, "limits"), name, joint, is_continuous)

        graph = self.result.graph
        graph.add_joint(joint)
        graph.link_bodies(
            parent, PTransform(matrix_from_rpy(*rpy), xyz), child, PTransform.identity(), name
        )
        self.joint_idx += 1


def _load(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"YAML: invalid document: {exc}") from exc


def from_yaml(content: str, params: Optional[ParserParameters] = None) -> ParserResult:
    """Build a robot model from the text of a YAML robot description."""
    params = params if params is not None else ParserParameters()
    return _YamlReader(params).read(_load(content))


def from_yaml_file(file_path: str, params: Optional[ParserParameters] = None) -> ParserResult:
    """Build a robot model from a YAML robot description file."""
    try:
        with open(file_path, encoding="utf-8") as handle:
            content = handle.read()
    except OSError as exc:
        raise OSError(f"YAML: Can't open {file_path} file for reading") from exc
    return from_yaml(content, params)
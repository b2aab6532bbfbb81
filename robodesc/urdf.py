"""Reading robot models from URDF documents."""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from typing import Callable, Optional, Sequence

import numpy as np

from robodesc.body import Body, PTransform, inertia_to_origin
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

# Numbers always use the period as decimal separator, whatever the locale.
_NUMBER = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def _numbers(text: str) -> list[float]:
    """Leading whitespace-separated numbers of text; stops at the first bad token."""
    values = []
    pos = 0
    while (match := _NUMBER.match(text, pos)) is not None:
        values.append(float(match.group(1)))
        pos = match.end()
    return values


def _attr_double(elem: ET.Element, attr: str, default: float = 0.0) -> float:
    text = elem.get(attr)
    if text is None:
        return default
    values = _numbers(text)
    return values[0] if values else default


def _attr_list(elem: ET.Element, attr: str, default: Sequence[float] = ()) -> list[float]:
    text = elem.get(attr)
    if text is None:
        return list(default)
    return _numbers(text)


def _attr_vector(elem: ET.Element, attr: str, default: Sequence[float]) -> np.ndarray:
    values = _attr_list(elem, attr, default)
    return np.array(values if len(values) == 3 else default, dtype=float)


def rpy(r: float, p: float, y: float) -> np.ndarray:
    """Rotation matrix (frame convention) from roll, pitch and yaw angles."""
    ca1, sa1 = math.cos(y), math.sin(y)
    cb1, sb1 = math.cos(p), math.sin(p)
    cc1, sc1 = math.cos(r), math.sin(r)
    m = np.array(
        [
            [ca1 * cb1, ca1 * sb1 * sc1 - sa1 * cc1, ca1 * sb1 * cc1 + sa1 * sc1],
            [sa1 * cb1, sa1 * sb1 * sc1 + ca1 * cc1, sa1 * sb1 * cc1 - ca1 * sc1],
            [-sb1, cb1 * sc1, cb1 * cc1],
        ]
    )
    return m.T


def _rpy_list(values: Sequence[float]) -> np.ndarray:
    if len(values) != 3:
        raise ValueError(f"Cannot convert RPY vector of size {len(values)} to matrix")
    return rpy(*values)


def _read_inertia(elem: ET.Element) -> np.ndarray:
    ixx, ixy, ixz = (_attr_double(elem, k) for k in ("ixx", "ixy", "ixz"))
    iyy, iyz, izz = (_attr_double(elem, k) for k in ("iyy", "iyz", "izz"))
    return np.array([[ixx, ixy, ixz], [ixy, iyy, iyz], [ixz, iyz, izz]])


def joint_type_from_urdf(type_name: str, has_spherical_suffix: bool = False) -> JointType:
    """Map a URDF joint type name to a joint type; unknown names become fixed."""
    if type_name in ("revolute", "continuous"):
        return JointType.REV
    if type_name == "prismatic":
        return JointType.PRISM
    if type_name == "floating":
        return JointType.SPHERICAL if has_spherical_suffix else JointType.FREE
    if type_name == "ball":
        return JointType.SPHERICAL
    if type_name == "fixed":
        return JointType.FIXED
    _log.warning("Unknown type in URDF %s, conversion will default to fixed", type_name)
    return JointType.FIXED


def _material_from_tag(
    elem: ET.Element, cache: dict[str, Material], store: bool
) -> Optional[Material]:
    name = elem.get("name")
    if name is None:
        _log.warning("Unnamed material encountered while parsing, it will be ignored")
        return None
    if name in cache:
        return cache[name]
    material: Optional[Material] = None
    color_el = elem.find("color")
    texture_el = elem.find("texture")
    if color_el is not None:
        color = _attr_list(color_el, "rgba", (1.0, 0.0, 0.0, 1.0))
        if len(color) != 4:
            _log.warning(
                "rgba attribute in color element in material %s does not have 4 components, "
                "it will be ignored",
                name,
            )
            return None
        material = Material(MaterialType.COLOR, color=tuple(color))
    elif texture_el is not None:
        filename = texture_el.get("filename")
        if filename is None:
            _log.warning(
                "texture element in material %s does not have a filename attribute, "
                "it will be ignored",
                name,
            )
            return None
        material = Material(MaterialType.TEXTURE, texture=filename)
    else:
        _log.warning("material %s has no color or texture element, it will be ignored", name)
        return None
    if store:
        cache[name] = material
    return material


def _origin_from_tag(elem: ET.Element) -> PTransform:
    origin = elem.find("origin")
    if origin is None:
        return PTransform.identity()
    translation = _attr_vector(origin, "xyz", (0.0, 0.0, 0.0))
    rotation = _rpy_list(_attr_list(origin, "rpy", (0.0, 0.0, 0.0)))
    return PTransform(rotation, translation)


def _mesh(elem: ET.Element) -> Mesh:
    scale = _attr_list(elem, "scale", (1.0,))
    if len(scale) == 3:
        return Mesh(elem.get("filename", ""), scale[2], scale)
    if len(scale) != 1:
        raise ValueError(f"Mesh scale must have 1 or 3 components, got {len(scale)}")
    return Mesh(elem.get("filename", ""), scale[0], [scale[0]] * 3)


def _box(elem: ET.Element) -> Box:
    return Box(_attr_vector(elem, "size", (0.0, 0.0, 0.0)))


def _cylinder(elem: ET.Element) -> Cylinder:
    return Cylinder(_attr_double(elem, "radius"), _attr_double(elem, "length"))


def _sphere(elem: ET.Element) -> Sphere:
    return Sphere(_attr_double(elem, "radius"))


def _superellipsoid(elem: ET.Element) -> Superellipsoid:
    return Superellipsoid(
        _attr_vector(elem, "size", (0.0, 0.0, 0.0)),
        _attr_double(elem, "epsilon1", 1.0),
        _attr_double(elem, "epsilon2", 1.0),
    )


_GEOMETRIES: list[tuple[str, GeometryType, Callable[[ET.Element], object]]] = [
    ("mesh", GeometryType.MESH, _mesh),
    ("box", GeometryType.BOX, _box),
    ("cylinder", GeometryType.CYLINDER, _cylinder),
    ("sphere", GeometryType.SPHERE, _sphere),
    ("superellipsoid", GeometryType.SUPERELLIPSOID, _superellipsoid),
]


def _visual_from_tag(elem: ET.Element, cache: dict[str, Material]) -> Optional[Visual]:
    geometry_el = elem.find("geometry")
    if geometry_el is None:
        return None
    visual = Visual(origin=_origin_from_tag(elem))
    for tag, geometry_type, build in _GEOMETRIES:
        shape = geometry_el.find(tag)
        if shape is not None:
            visual.geometry = Geometry(geometry_type, build(shape))
            break
    else:
        _log.warning("Unknown visual or collision element was encountered")
    name = elem.get("name")
    if name is not None:
        visual.name = name
    material_el = elem.find("material")
    if material_el is not None:
        material = _material_from_tag(material_el, cache, store=False)
        if material is not None:
            visual.material = material
    return visual


def _link_name(joint: ET.Element, tag: str) -> str:
    node = joint.find(tag)
    if node is None or node.get("link") is None:
        raise ValueError(f"Joint {joint.get('name', '')!r} has no {tag} link")
    return node.get("link", "")


def _add_link(result: ParserResult, link: ET.Element, params: ParserParameters,
              cache: dict[str, Material]) -> None:
    name = link.get("name", "")
    mass = 0.0
    com = np.zeros(3)
    inertia_o = np.zeros((3, 3))
    inertial = link.find("inertial")
    if inertial is not None:
        com_rpy: list[float] = [0.0, 0.0, 0.0]
        origin = inertial.find("origin")
        if origin is not None:
            com = _attr_vector(origin, "xyz", (0.0, 0.0, 0.0))
            com_rpy = _attr_list(origin, "rpy", (0.0, 0.0, 0.0))
        com_frame = _rpy_list(com_rpy)
        mass_el = inertial.find("mass")
        mass = _attr_double(mass_el, "value") if mass_el is not None else 0.0
        inertia_el = inertial.find("inertia")
        inertia = _read_inertia(inertia_el) if inertia_el is not None else np.zeros((3, 3))
        if params.transform_inertia:
            inertia_o = inertia_to_origin(inertia, mass, com, com_frame)
        else:
            inertia_o = inertia

    for tag, target in (("visual", result.visual), ("collision", result.collision)):
        for child in link.findall(tag):
            visual = _visual_from_tag(child, cache)
            if visual is not None:
                target.setdefault(name, []).append(visual)

    result.graph.add_body(Body.from_com(mass, com, inertia_o, name))


def _add_joint(result: ParserResult, joint_el: ET.Element, type_name: str,
               params: ParserParameters) -> None:
    name = joint_el.get("name", "")
    static_transform = _origin_from_tag(joint_el)

    axis = np.array([0.0, 0.0, 1.0])
    axis_el = joint_el.find("axis")
    if axis_el is not None:
        raw = _attr_vector(axis_el, "xyz", (0.0, 0.0, 0.0))
        norm = np.linalg.norm(raw)
        axis = raw / norm if norm > 0.0 else raw

    joint_type = joint_type_from_urdf(type_name, name.endswith(params.spherical_suffix))
    parent = _link_name(joint_el, "parent")
    child = _link_name(joint_el, "child")
    joint = Joint(joint_type, axis, True, name)

    mimic_el = joint_el.find("mimic")
    if mimic_el is not None and joint.type is not JointType.FIXED:
        joint.make_mimic(
            mimic_el.get("joint", ""),
            _attr_double(mimic_el, "multiplier", 1.0),
            _attr_double(mimic_el, "offset"),
        )

    result.graph.add_joint(joint)
    result.graph.link_bodies(parent, static_transform, child, PTransform.identity(), name)

    dof = joint.dof
    lower = [-math.inf] * dof
    upper = [math.inf] * dof
    effort = [math.inf] * dof
    velocity = [math.inf] * dof
    limit_el = joint_el.find("limit")
    if limit_el is not None and joint.type is not JointType.FIXED:
        if type_name != "continuous":
            lower = _attr_list(limit_el, "lower")
            upper = _attr_list(limit_el, "upper")
        effort = _attr_list(limit_el, "effort")
        velocity = _attr_list(limit_el, "velocity")
    for label, limit in (("lower", lower), ("upper", upper), ("effort", effort),
                         ("velocity", velocity)):
        if len(limit) != dof:
            _log.warning(
                "Joint %s limit for %s: size missmatch, expected: %d, got: %d",
                label, name, dof, len(limit),
            )
    result.limits.lower[name] = lower
    result.limits.upper[name] = upper
    result.limits.torque[name] = effort
    result.limits.velocity[name] = velocity


def from_urdf(content: str, params: Optional[ParserParameters] = None) -> ParserResult:
    """Build a robot model from the text of a URDF document."""
    params = params if params is not None else ParserParameters()
    try:
        robot = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ValueError(f"No robot tag in the URDF: {exc}") from exc
    if robot.tag != "robot":
        raise ValueError("No robot tag in the URDF")

    result = ParserResult(name=robot.get("name", ""), fixed=params.fixed)

    cache: dict[str, Material] = {}
    for material in robot.findall("material"):
        _material_from_tag(material, cache, store=True)

    links: list[ET.Element] = []
    fixed_links: set[str] = set()
    removed_links: set[str] = set()
    for link in robot.findall("link"):
        link_name = link.get("name", "")
        if link.find("inertial") is None and params.remove_virtual_links:
            removed_links.add(link_name)
        elif link_name in params.filtered_links:
            if params.remove_filtered_links:
                removed_links.add(link_name)
            else:
                fixed_links.add(link_name)
                links.append(link)
        else:
            links.append(link)

    if not links:
        raise ValueError("Failed to extract any link information from the URDF")

    result.base_link = params.base_link or links[0].get("name", "")

    for link in links:
        _add_link(result, link, params, cache)

    joints: list[tuple[ET.Element, str]] = []
    for joint_el in robot.findall("joint"):
        parent = _link_name(joint_el, "parent")
        child = _link_name(joint_el, "child")
        if parent in removed_links or child in removed_links:
            continue
        type_name = "fixed" if child in fixed_links else joint_el.get("type", "")
        joints.append((joint_el, type_name))

    for joint_el, type_name in joints:
        _add_joint(result, joint_el, type_name, params)

    return result


def from_urdf_file(file_path: str, params: Optional[ParserParameters] = None) -> ParserResult:
    """Build a robot model from a URDF file."""
    try:
        with open(file_path, encoding="utf-8") as handle:
            content = handle.read()
    except OSError as exc:
        raise OSError(f"URDF: Can't open {file_path} file for reading") from exc
    return from_urdf(content, params)
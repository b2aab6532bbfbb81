import math
import textwrap

import numpy as np
import pytest

from robodesc.body import inertia_to_origin
from robodesc.joint import JointType
from robodesc.model import (
    Box,
    Cylinder,
    GeometryType,
    Material,
    MaterialType,
    Mesh,
    ParserParameters,
    Sphere,
    Superellipsoid,
)
from robodesc.urdf import rpy as urdf_rpy
from robodesc.yaml_format import from_yaml, from_yaml_file, matrix_from_rpy

ARM = textwrap.dedent(
    """
    robot:
      name: XYZSarm
      anglesInDegrees: false
      materials:
        - name: red
          color:
            rgba: [1, 0, 0, 1]
      links:
        - name: b0
          inertial:
            mass: 1
            inertia: {Ixx: 1, Iyy: 1, Izz: 1}
          visual:
            - name: v0
              frame: {xyz: [0.1, 0.2, 0.3]}
              geometry:
                box: {size: [1, 2, 3]}
              material: {name: red}
        - name: b1
          inertial:
            mass: 2
            frame: {xyz: [0, 0.5, 0]}
            inertia: {Ixx: 1, Iyy: 2, Izz: 3}
        - name: b2
          inertial:
            mass: 1
        - name: b3
          inertial:
            mass: 1
      joints:
        - name: j0
          parent: b0
          child: b1
          type: revolute
          axis: [1, 0, 0]
          frame: {xyz: [0, 1, 0]}
          limits: {lower: -1, upper: 1, velocity: 10, effort: 50}
        - name: j1
          parent: b1
          child: b2
          type: continuous
          limits: {lower: -1, upper: 1, velocity: 10, effort: 50}
        - name: j2
          parent: b2
          child: b3
          type: ball
          limits:
            lower: [-1, -2, -3]
            upper: [1, 2, 3]
            velocity: [4, 5, 6]
            effort: [7, 8, 9]
    """
)


def _doc(links, joints, degrees="false"):
    return (
        "robot:\n  name: r\n  anglesInDegrees: "
        + degrees
        + "\n  links:\n"
        + textwrap.indent(textwrap.dedent(links), "    ")
        + "  joints:\n"
        + textwrap.indent(textwrap.dedent(joints), "    ")
    )


def test_matrix_from_rpy_identity():
    assert np.allclose(matrix_from_rpy(0.0, 0.0, 0.0), np.eye(3))


def test_matrix_from_rpy_single_axis_matches_urdf_rpy():
    for angles in ((0.4, 0.0, 0.0), (0.0, -0.7, 0.0), (0.0, 0.0, 1.1)):
        assert np.allclose(matrix_from_rpy(*angles), urdf_rpy(*angles))


def test_matrix_from_rpy_composition_and_orthonormality():
    r, p, y = 0.3, -0.5, 1.2
    m = matrix_from_rpy(r, p, y)
    composed = matrix_from_rpy(0, 0, y) @ matrix_from_rpy(0, p, 0) @ matrix_from_rpy(r, 0, 0)
    assert np.allclose(m, composed)
    assert np.allclose(m @ m.T, np.eye(3))
    assert math.isclose(np.linalg.det(m), 1.0)


def test_load_structure():
    res = from_yaml(ARM)
    assert res.name == "XYZSarm"
    assert list(res.graph.bodies) == ["b0", "b1", "b2", "b3"]
    assert list(res.graph.joints) == ["j0", "j1", "j2"]
    assert res.base_link == "b0"
    assert res.graph.joints["j0"].type is JointType.REV
    assert res.graph.joints["j1"].type is JointType.REV
    assert res.graph.joints["j2"].type is JointType.SPHERICAL
    assert np.allclose(res.graph.joints["j0"].motion_subspace[:, 0], [1, 0, 0, 0, 0, 0])
    arc = res.graph.arcs[0]
    assert (arc.parent, arc.child, arc.joint) == ("b0", "b1", "j0")
    assert np.allclose(arc.parent_transform.translation, [0, 1, 0])
    assert np.allclose(arc.parent_transform.rotation, np.eye(3))


def test_limits():
    res = from_yaml(ARM)
    lim = res.limits
    assert lim.lower["j0"] == [-1.0]
    assert lim.upper["j0"] == [1.0]
    assert lim.velocity["j0"] == [10.0]
    assert lim.torque["j0"] == [50.0]
    # continuous joints ignore position limits
    assert lim.lower["j1"] == [-math.inf]
    assert lim.upper["j1"] == [math.inf]
    assert lim.torque["j1"] == [50.0]
    assert lim.lower["j2"] == [-1.0, -2.0, -3.0]
    assert lim.upper["j2"] == [1.0, 2.0, 3.0]
    assert lim.velocity["j2"] == [4.0, 5.0, 6.0]
    assert lim.torque["j2"] == [7.0, 8.0, 9.0]


def test_inertia_transformed_to_origin():
    res = from_yaml(ARM)
    body = res.graph.bodies["b1"]
    expected = inertia_to_origin(np.diag([1.0, 2.0, 3.0]), 2.0, [0, 0.5, 0], np.eye(3))
    assert body.inertia.mass == 2.0
    assert np.allclose(body.inertia.momentum, 2.0 * np.array([0, 0.5, 0]))
    assert np.allclose(body.inertia.inertia, expected)


def test_inertia_not_transformed():
    res = from_yaml(ARM, ParserParameters(transform_inertia=False))
    assert np.allclose(res.graph.bodies["b1"].inertia.inertia, np.diag([1.0, 2.0, 3.0]))


def test_missing_inertia_defaults_to_identity():
    res = from_yaml(ARM, ParserParameters(transform_inertia=False))
    assert np.allclose(res.graph.bodies["b2"].inertia.inertia, np.eye(3))


def test_visual_with_cached_material():
    res = from_yaml(ARM)
    visuals = res.visual["b0"]
    assert len(visuals) == 1
    v = visuals[0]
    assert v.name == "v0"
    assert v.geometry.type is GeometryType.BOX
    assert v.geometry.data == Box([1, 2, 3])
    assert np.allclose(v.origin.translation, [0.1, 0.2, 0.3])
    assert v.material == Material(MaterialType.COLOR, color=(1.0, 0.0, 0.0, 1.0))
    assert "b1" not in res.visual


def test_all_geometry_kinds():
    links = """
    - name: a
      inertial: {mass: 1}
      collision:
        - geometry:
            mesh: {filename: m.stl, scale: [1, 2, 3]}
        - geometry:
            mesh: {filename: n.stl}
        - geometry:
            cylinder: {radius: 0.5, length: 2}
        - geometry:
            sphere: {radius: 0.25}
        - geometry:
            superellipsoid: {size: [1, 1, 1], epsilon1: 0.5, epsilon2: 0.7}
        - name: nothing
    """
    res = from_yaml(_doc(links, "[]\n"))
    data = [c.geometry.data for c in res.collision["a"]]
    assert data == [
        Mesh("m.stl", 3.0, [1, 2, 3]),
        Mesh("n.stl", 1.0, [1, 1, 1]),
        Cylinder(0.5, 2.0),
        Sphere(0.25),
        Superellipsoid([1, 1, 1], 0.5, 0.7),
    ]


@pytest.mark.parametrize(
    "geometry",
    [
        "mesh: {scale: [1]}",
        "box: {}",
        "box: {size: [1, 2]}",
        "cylinder: {radius: 1}",
        "sphere: {}",
        "superellipsoid: {size: [1, 1, 1]}",
        "cone: {radius: 1}",
    ],
)
def test_bad_geometry_raises(geometry):
    links = f"""
    - name: a
      inertial: {{mass: 1}}
      visual:
        - geometry: {{{geometry}}}
    """
    with pytest.raises(ValueError):
        from_yaml(_doc(links, "[]\n"))


def test_texture_material():
    links = """
    - name: a
      inertial: {mass: 1}
      visual:
        - geometry: {sphere: {radius: 1}}
          material: {name: wood, texture: {filename: wood.png}}
    """
    res = from_yaml(_doc(links, "[]\n"))
    assert res.visual["a"][0].material == Material(MaterialType.TEXTURE, texture="wood.png")


def test_degrees():
    links = """
    - name: a
      inertial: {mass: 1}
    - name: b
      inertial: {mass: 1}
    """
    joints = """
    - name: j
      parent: a
      child: b
      frame: {rpy: [90, 0, 0]}
      limits: {lower: -90, upper: 90, velocity: 180, effort: 50}
    """
    res = from_yaml(_doc(links, joints, degrees="true"))
    assert np.allclose(
        res.graph.arcs[0].parent_transform.rotation, matrix_from_rpy(math.radians(90), 0, 0)
    )
    assert math.isclose(res.limits.lower["j"][0], math.radians(-90))
    assert math.isclose(res.limits.upper["j"][0], math.radians(90))
    assert math.isclose(res.limits.velocity["j"][0], math.radians(180))
    assert res.limits.torque["j"] == [50.0]
    assert res.graph.joints["j"].type is JointType.REV


def test_floating_joint_suffix():
    links = """
    - name: a
      inertial: {mass: 1}
    - name: b
      inertial: {mass: 1}
    - name: c
      inertial: {mass: 1}
    """
    joints = """
    - {name: j_spherical, parent: a, child: b, type: floating}
    - {name: j_free, parent: b, child: c, type: floating}
    """
    res = from_yaml(_doc(links, joints))
    assert res.graph.joints["j_spherical"].type is JointType.SPHERICAL
    assert res.graph.joints["j_free"].type is JointType.FREE


def test_unknown_joint_type():
    links = """
    - name: a
      inertial: {mass: 1}
    - name: b
      inertial: {mass: 1}
    """
    joints = "- {name: j, parent: a, child: b, type: hinge}\n"
    with pytest.raises(ValueError, match="ball,continuous,fixed,free,prismatic,revolute,spherical"):
        from_yaml(_doc(links, joints))


def test_bad_axis_size():
    links = """
    - name: a
      inertial: {mass: 1}
    - name: b
      inertial: {mass: 1}
    """
    joints = "- {name: j, parent: a, child: b, axis: [1, 0]}\n"
    with pytest.raises(ValueError):
        from_yaml(_doc(links, joints))


def test_default_names():
    links = """
    - inertial: {mass: 1}
    - inertial: {mass: 1}
    """
    joints = "- {}\n"
    res = from_yaml(_doc(links, joints))
    assert list(res.graph.bodies) == ["link1", "link2"]
    assert list(res.graph.joints) == ["joint1"]
    arc = res.graph.arcs[0]
    assert (arc.parent, arc.child) == ("link1", "link2")


def test_virtual_links():
    links = """
    - name: a
      inertial: {mass: 1}
    - name: v
    """
    joints = "- {name: j, parent: a, child: v}\n"
    res = from_yaml(_doc(links, joints))
    assert list(res.graph.bodies) == ["a"]
    assert res.graph.joints == {}
    kept = from_yaml(_doc(links, joints), ParserParameters(remove_virtual_links=False))
    assert list(kept.graph.bodies) == ["a", "v"]
    assert kept.graph.bodies["v"].inertia.mass == 0.0
    assert list(kept.graph.joints) == ["j"]


def test_filtered_links():
    links = """
    - name: a
      inertial: {mass: 1}
    - name: b
      inertial: {mass: 1}
    """
    joints = "- {name: j, parent: a, child: b, type: revolute}\n"
    removed = from_yaml(_doc(links, joints), ParserParameters(filtered_links=["b"]))
    assert list(removed.graph.bodies) == ["a"]
    assert "j" not in removed.graph.joints
    fixed = from_yaml(
        _doc(links, joints),
        ParserParameters(filtered_links=["b"], remove_filtered_links=False),
    )
    assert list(fixed.graph.bodies) == ["a", "b"]
    assert fixed.graph.joints["j"].type is JointType.FIXED
    assert fixed.limits.lower["j"] == []


def test_base_link_override():
    res = from_yaml(ARM, ParserParameters(base_link="b2", fixed=False))
    assert res.base_link == "b2"
    assert res.fixed is False


@pytest.mark.parametrize(
    "text",
    [
        "",
        "other: 1\n",
        "robot:\n  name: r\n  anglesInDegrees: false\n  joints: []\n",
        "robot:\n  name: r\n  links: []\n  joints: []\n",
        "robot:\n  name: r\n  anglesInDegrees: false\n  links:\n    - {name: a, inertial: {}}\n",
        "robot:\n  anglesInDegrees: false\n  links: []\n  joints: []\n",
    ],
)
def test_missing_required_elements(text):
    with pytest.raises(ValueError):
        from_yaml(text)


def test_bad_frame_size():
    links = """
    - name: a
      inertial:
        mass: 1
        frame: {xyz: [1, 2]}
    """
    with pytest.raises(ValueError):
        from_yaml(_doc(links, "[]\n"))


def test_from_yaml_file(tmp_path):
    path = tmp_path / "robot.yaml"
    path.write_text(ARM, encoding="utf-8")
    from_file = from_yaml_file(str(path))
    from_text = from_yaml(ARM)
    assert from_file.name == from_text.name
    assert list(from_file.graph.bodies) == list(from_text.graph.bodies)
    assert from_file.limits == from_text.limits


def test_from_yaml_file_missing(tmp_path):
    with pytest.raises(OSError):
        from_yaml_file(str(tmp_path / "absent.yaml"))
# robodesc

Read robot descriptions written as URDF or YAML. The result holds the
robot's bodies (mass, first moment of mass, inertia), its joints and the
bodies each joint links, the joint limits, and the visual and collision
geometry of each link.

## Installation

```
pip install robodesc
```

## Reading a description

```python
from robodesc.model import ParserParameters
from robodesc.urdf import from_urdf_file
from robodesc.yaml_format import from_yaml

result = from_urdf_file("arm.urdf", ParserParameters(transform_inertia=False))
print(result.name, result.base_link)
print(sorted(result.graph.bodies))   # body names
print(result.limits.lower)           # joint name -> list of lower limits
print(result.visual)                 # link name -> list of Visual

result = from_yaml("""
robot:
  name: two_links
  anglesInDegrees: true
  links:
    - name: b0
      inertial: {mass: 1.0}
    - name: b1
      inertial:
        mass: 2.0
        frame: {xyz: [0, 0, 0.5]}
        inertia: {Ixx: 0.1, Iyy: 0.1, Izz: 0.1}
  joints:
    - name: j0
      type: revolute
      parent: b0
      child: b1
      axis: [0, 1, 0]
      limits: {lower: -90, upper: 90}
""")
```

`from_urdf(content, params)` and `from_yaml(content, params)` take the
description as text; `from_urdf_file(path, params)` and
`from_yaml_file(path, params)` read it from a file. `params` may be left out.

Malformed or incomplete descriptions raise `ValueError` (no `robot` element,
no usable link, missing required YAML entries, unknown YAML joint or geometry
types, a joint naming an unknown body). A file that cannot be opened raises
`OSError`. Problems that only drop part of the description, such as a
material without color or texture, an unknown URDF joint type (read as
fixed) or limits of the wrong size, are reported through the `logging`
loggers `robodesc.urdf` and `robodesc.yaml_format`.

### Parser parameters

`robodesc.model.ParserParameters` has these fields:

| field | default | effect |
| --- | --- | --- |
| `fixed` | `True` | copied to `ParserResult.fixed` |
| `filtered_links` | `[]` | links to remove, or to keep with a fixed joint |
| `remove_filtered_links` | `True` | remove filtered links (otherwise their parent joint becomes fixed) |
| `transform_inertia` | `True` | move each link's inertia from its center of mass to the link origin |
| `base_link` | `""` | base link name; empty means the first kept link |
| `remove_virtual_links` | `True` | drop links that have no inertial data |
| `spherical_suffix` | `"_spherical"` | a floating joint whose name ends with it is read as spherical, otherwise as free |

Joints touching a removed link are dropped with it.

### The result

`ParserResult` holds `name`, `base_link`, `fixed`, `graph`, `limits`,
`visual` and `collision`.

- `graph` is a `RobotGraph` with `bodies` (name to `Body`), `joints`
  (name to `Joint`) and `arcs`, one per joint, each holding the parent name,
  the transform from parent to joint, the child name, the child transform and
  the joint name.
- `limits` is a `Limits` with `lower`, `upper`, `velocity` and `torque`,
  each mapping a joint name to one value per degree of freedom (infinite when
  not given). In YAML, angles are converted from degrees when
  `anglesInDegrees` is true.
- `visual` and `collision` map a link name to a list of `Visual`, each with
  a `name`, an `origin` transform, a `Geometry` (`Mesh`, `Box`, `Cylinder`,
  `Sphere` or `Superellipsoid`) and a `Material` (a color or a texture file).

## Building blocks

- `robodesc.body`: `PTransform` (rotation plus translation, with `inv()`,
  composition by `*` and `identity()`), `RBInertia`, `Body` (with
  `Body.from_com`), the rotations `rot_x`, `rot_y`, `rot_z`, and
  `inertia_to_origin`.
- `robodesc.joint`: `JointType` and `Joint`. A joint gives its motion
  subspace, number of parameters and degrees of freedom, its pose for a
  configuration, its motion and tangential acceleration, and its zero
  configuration and velocity (`zero_param_for` and `zero_dof_for` give these
  per type). `make_mimic` records a mimic joint. `s_pose`, `s_motion` and
  `s_tan_accel` check the vector size first and raise `ValueError` when it is
  wrong. `quat_to_e` turns a wxyz vector into a rotation matrix.
- `robodesc.urdf`: besides the readers, `rpy` (rotation from roll, pitch,
  yaw) and `joint_type_from_urdf`.
- `robodesc.yaml_format`: besides the readers, `matrix_from_rpy`.

## What this package does not do

It only reads descriptions. It does not write URDF or YAML, has no command
for converting between the two formats, and does not arrange the bodies into
a kinematic tree or compute positions, velocities or accelerations of the
whole robot; `RobotGraph` only records bodies, joints and how they connect.

## Running the tests

```
pip install robodesc[test]
pytest
```
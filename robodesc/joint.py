"""Joint model: motion subspace, pose, velocity and zero configurations."""

from __future__ import annotations

from enum import Enum
from typing import Sequence

import numpy as np

from robodesc.body import PTransform, rot_z


class JointType(Enum):
    REV = 0
    PRISM = 1
    SPHERICAL = 2
    PLANAR = 3
    CYLINDRICAL = 4
    FREE = 5
    FIXED = 6


_ZERO_PARAM = {
    JointType.REV: [0.0],
    JointType.PRISM: [0.0],
    JointType.SPHERICAL: [1.0, 0.0, 0.0, 0.0],
    JointType.PLANAR: [0.0, 0.0, 0.0],
    JointType.CYLINDRICAL: [0.0, 0.0],
    JointType.FREE: [1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    JointType.FIXED: [],
}

_ZERO_DOF = {
    JointType.REV: [0.0],
    JointType.PRISM: [0.0],
    JointType.SPHERICAL: [0.0, 0.0, 0.0],
    JointType.PLANAR: [0.0, 0.0, 0.0],
    JointType.CYLINDRICAL: [0.0, 0.0],
    JointType.FREE: [0.0] * 6,
    JointType.FIXED: [],
}


def zero_param_for(joint_type: JointType) -> list[float]:
    """Joint configuration at zero for a joint type."""
    return list(_ZERO_PARAM[joint_type])


def zero_dof_for(joint_type: JointType) -> list[float]:
    """Joint velocity at zero for a joint type."""
    return list(_ZERO_DOF[joint_type])


def quat_to_e(q: Sequence[float]) -> np.ndarray:
    """Rotation matrix in successor frame from a wxyz parameter vector."""
    p0, p1, p2, p3 = (float(v) for v in q[:4])
    p0s, p1s, p2s, p3s = p0 * p0, p1 * p1, p2 * p2, p3 * p3
    return 2.0 * np.array(
        [
            [p0s + p1s - 0.5, p1 * p2 + p0 * p3, p1 * p3 - p0 * p2],
            [p1 * p2 - p0 * p3, p0s + p2s - 0.5, p2 * p3 + p0 * p1],
            [p1 * p3 + p0 * p2, p2 * p3 - p0 * p1, p0s + p3s - 0.5],
        ]
    )


def _angle_axis(angle: float, axis: np.ndarray) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    x, y, z = axis
    cross = np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])
    return c * np.eye(3) + s * cross + (1.0 - c) * np.outer(axis, axis)


def _quat_matrix(w: float, x: float, y: float, z: float) -> np.ndarray:
    tx, ty, tz = 2.0 * x, 2.0 * y, 2.0 * z
    twx, twy, twz = tx * w, ty * w, tz * w
    txx, txy, txz = tx * x, ty * x, tz * x
    tyy, tyz, tzz = ty * y, tz * y, tz * z
    return np.array(
        [
            [1.0 - (tyy + tzz), txy - twz, txz + twy],
            [txy + twz, 1.0 - (txx + tzz), tyz - twx],
            [txz - twy, tyz + twx, 1.0 - (txx + tyy)],
        ]
    )


class Joint:
    """A joint identified by its name, with its motion subspace in successor frame.

    Free joint translation parameters are in predecessor frame coordinates.
    """

    def __init__(
        self,
        joint_type: JointType = JointType.FIXED,
        axis: Sequence[float] = (0.0, 0.0, 1.0),
        forward: bool = True,
        name: str = "",
    ) -> None:
        self.name = name
        self._type = joint_type
        self._dir = 1.0 if forward else -1.0
        self.is_mimic = False
        self.mimic_name = ""
        self.mimic_multiplier = 1.0
        self.mimic_offset = 0.0
        self._subspace = self._build_subspace(joint_type, np.array(axis, dtype=float).reshape(3))

    def _build_subspace(self, joint_type: JointType, axis: np.ndarray) -> np.ndarray:
        if joint_type is JointType.REV:
            s = np.concatenate([axis, np.zeros(3)]).reshape(6, 1)
        elif joint_type is JointType.PRISM:
            s = np.concatenate([np.zeros(3), axis]).reshape(6, 1)
        elif joint_type is JointType.SPHERICAL:
            s = np.zeros((6, 3))
            s[0:3, 0:3] = np.eye(3)
        elif joint_type is JointType.PLANAR:
            s = np.zeros((6, 3))
            s[2:5, 0:3] = np.eye(3)
        elif joint_type is JointType.CYLINDRICAL:
            s = np.zeros((6, 2))
            s[0:3, 0] = axis
            s[3:6, 1] = axis
        elif joint_type is JointType.FREE:
            s = np.eye(6)
        else:
            s = np.zeros((6, 0))
        return self._dir * s

    @property
    def type(self) -> JointType:
        return self._type

    @property
    def direction(self) -> float:
        return self._dir

    @property
    def forward(self) -> bool:
        return self._dir == 1.0

    @forward.setter
    def forward(self, value: bool) -> None:
        if value != self.forward:
            self._subspace = -self._subspace
        self._dir = 1.0 if value else -1.0

    @property
    def params(self) -> int:
        return len(_ZERO_PARAM[self._type])

    @property
    def dof(self) -> int:
        return len(_ZERO_DOF[self._type])

    @property
    def motion_subspace(self) -> np.ndarray:
        return self._subspace

    def make_mimic(self, name: str, multiplier: float, offset: float) -> None:
        """Turn this joint into a mimic of another one; this cannot be undone."""
        self.is_mimic = True
        self.mimic_name = name
        self.mimic_multiplier = float(multiplier)
        self.mimic_offset = float(offset)

    def pose(self, q: Sequence[float]) -> PTransform:
        """Transform from predecessor to successor frame for configuration q."""
        s = self._subspace
        t = self._type
        if t is JointType.REV:
            return PTransform(_angle_axis(-q[0], s[0:3, 0]))
        if t is JointType.PRISM:
            return PTransform(np.eye(3), s[3:6, 0] * q[0])
        if t is JointType.SPHERICAL:
            w, x, y, z = q[0], self._dir * q[1], self._dir * q[2], self._dir * q[3]
            n = w * w + x * x + y * y + z * z
            return PTransform(_quat_matrix(w / n, -x / n, -y / n, -z / n))
        if t is JointType.PLANAR:
            rot = rot_z(q[0])
            tf = PTransform(rot, rot.T @ np.array([q[1], q[2], 0.0]))
            return tf if self._dir == 1.0 else tf.inv()
        if t is JointType.CYLINDRICAL:
            return PTransform(_angle_axis(-q[0], s[0:3, 0]), s[3:6, 1] * q[1])
        if t is JointType.FREE:
            tf = PTransform(quat_to_e(q), [q[4], q[5], q[6]])
            return tf if self._dir == 1.0 else tf.inv()
        return PTransform.identity()

    def _apply_subspace(self, values: Sequence[float]) -> np.ndarray:
        vec = np.asarray(list(values)[: self.dof], dtype=float)
        return self._subspace @ vec

    def motion(self, alpha: Sequence[float]) -> np.ndarray:
        """Joint spatial velocity (angular, linear) for generalized speed alpha."""
        return self._apply_subspace(alpha)

    def tan_accel(self, alpha_d: Sequence[float]) -> np.ndarray:
        """Tangential part of the acceleration, S * alpha_d."""
        return self._apply_subspace(alpha_d)

    def zero_param(self) -> list[float]:
        q = zero_param_for(self._type)
        if self.is_mimic:
            q = [v + self.mimic_offset for v in q]
        return q

    def zero_dof(self) -> list[float]:
        return zero_dof_for(self._type)

    def s_pose(self, q: Sequence[float]) -> PTransform:
        if len(q) != self.params:
            raise ValueError(
                f"Wrong number of generalized position variable: expected {self.params} gived {len(q)}"
            )
        return self.pose(q)

    def s_motion(self, alpha: Sequence[float]) -> np.ndarray:
        if len(alpha) != self.dof:
            raise ValueError(
                f"Wrong number of generalized speed variable: expected {self.dof} gived {len(alpha)}"
            )
        return self.motion(alpha)

    def s_tan_accel(self, alpha_d: Sequence[float]) -> np.ndarray:
        if len(alpha_d) != self.dof:
            raise ValueError(
                f"Wrong number of generalized acceleration variable: expected {self.dof} gived {len(alpha_d)}"
            )
        return self.tan_accel(alpha_d)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Joint):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return f"Joint: {self.name}"
"""Rigid bodies, spatial transforms and rotation helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np


def _vec3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3)


def _mat3(value) -> np.ndarray:
    return np.array(value, dtype=float).reshape(3, 3)


def rot_x(theta: float) -> np.ndarray:
    """Rotation matrix about X in the transposed (frame) convention."""
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, s], [0.0, -s, c]])


def rot_y(theta: float) -> np.ndarray:
    """Rotation matrix about Y in the transposed (frame) convention."""
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, 0.0, -s], [0.0, 1.0, 0.0], [s, 0.0, c]])


def rot_z(theta: float) -> np.ndarray:
    """Rotation matrix about Z in the transposed (frame) convention."""
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, s, 0.0], [-s, c, 0.0], [0.0, 0.0, 1.0]])


def _cross_matrix(v) -> np.ndarray:
    x, y, z = _vec3(v)
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def inertia_to_origin(inertia, mass: float, com, rotation) -> np.ndarray:
    """Express an inertia matrix given at the center of mass at the body origin."""
    rot = _mat3(rotation)
    cross = _cross_matrix(com)
    return rot @ _mat3(inertia) @ rot.T + float(mass) * cross @ cross.T


@dataclass(eq=False)
class PTransform:
    """Plücker transform: a rotation and a translation expressed in the source frame."""

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.rotation = _mat3(self.rotation)
        self.translation = _vec3(self.translation)

    @classmethod
    def identity(cls) -> "PTransform":
        return cls()

    def inv(self) -> "PTransform":
        return PTransform(self.rotation.T, -(self.rotation @ self.translation))

    def __mul__(self, other: "PTransform") -> "PTransform":
        if not isinstance(other, PTransform):
            return NotImplemented
        return PTransform(
            self.rotation @ other.rotation,
            other.translation + other.rotation.T @ self.translation,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PTransform):
            return NotImplemented
        return bool(
            np.array_equal(self.rotation, other.rotation)
            and np.array_equal(self.translation, other.translation)
        )

    __hash__ = None  # type: ignore[assignment]

    def is_approx(self, other: "PTransform", tol: float = 1e-9) -> bool:
        return bool(
            np.allclose(self.rotation, other.rotation, atol=tol)
            and np.allclose(self.translation, other.translation, atol=tol)
        )


@dataclass(eq=False)
class RBInertia:
    """Spatial rigid-body inertia: mass, first moment of mass and origin inertia."""

    mass: float = 0.0
    momentum: np.ndarray = field(default_factory=lambda: np.zeros(3))
    inertia: np.ndarray = field(default_factory=lambda: np.zeros((3, 3)))

    def __post_init__(self) -> None:
        self.mass = float(self.mass)
        self.momentum = _vec3(self.momentum)
        self.inertia = _mat3(self.inertia)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RBInertia):
            return NotImplemented
        return bool(
            self.mass == other.mass
            and np.array_equal(self.momentum, other.momentum)
            and np.array_equal(self.inertia, other.inertia)
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass(eq=False)
class Body:
    """A named rigid body; bodies compare equal when their names match."""

    inertia: RBInertia = field(default_factory=RBInertia)
    name: str = ""

    @classmethod
    def from_com(cls, mass: float, com, inertia, name: str) -> "Body":
        """Build a body from its mass, center of mass and inertia at the body origin."""
        return cls(RBInertia(mass, float(mass) * _vec3(com), inertia), name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Body):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return f"Body: {self.name}"
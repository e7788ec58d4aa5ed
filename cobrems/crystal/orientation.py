"""
Orientation of the radiator crystal with respect to the beam.

The beam travels along +z of the beam frame. The rotation matrix R maps
crystal-frame vectors into the beam frame and is composed from the three
stored angles as

    R = Rx(thetax) . Ry(thetay) . Rz(thetaz)

i.e. a crystal vector is first rolled by thetaz about z, then turned by the
large angle thetay about y, then tilted by the small angle thetax about x.
Incremental rotations are post-multiplied, so rotating by (a, 0, 0) and then
by (0, b, 0) is the same as setting (a, b, 0) directly.

Instances are not synchronized; give each worker its own copy.
"""

from typing import Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from cobrems.core.logging_config import get_logger

logger = get_logger("crystal.orientation")

EULER_SEQUENCE = "XYZ"


def rotation_matrix(thetax: float, thetay: float, thetaz: float) -> np.ndarray:
    """Rx(thetax) . Ry(thetay) . Rz(thetaz) as a 3x3 array."""
    return Rotation.from_euler(EULER_SEQUENCE, [thetax, thetay, thetaz]).as_matrix()


class Orientation:
    """
    Crystal orientation: three angles plus the derived rotation matrix.

    Parameters
    ----------
    thetax : float
        Small tilt angle about the beam-frame x axis, rad
    thetay : float
        Large tilt angle about the y axis, rad
    thetaz : float
        Roll about the beam axis, rad
    """

    def __init__(self, thetax: float = 0.0, thetay: float = 0.0, thetaz: float = 0.0):
        self.set_angles(thetax, thetay, thetaz)

    @property
    def thetax(self) -> float:
        return self._angles[0]

    @property
    def thetay(self) -> float:
        return self._angles[1]

    @property
    def thetaz(self) -> float:
        return self._angles[2]

    @property
    def angles(self) -> Tuple[float, float, float]:
        return self._angles

    @property
    def matrix(self) -> np.ndarray:
        """Read-only view of the crystal-to-beam rotation matrix."""
        view = self._matrix.view()
        view.setflags(write=False)
        return view

    def set_angles(self, thetax: float, thetay: float, thetaz: float) -> None:
        """Set all three angles and rebuild the matrix."""
        self._angles = (float(thetax), float(thetay), float(thetaz))
        if self._angles == (0.0, 0.0, 0.0):
            self._matrix = np.eye(3)
        else:
            self._matrix = rotation_matrix(*self._angles)

    def reset(self) -> None:
        """Identity orientation, all angles zero."""
        self._angles = (0.0, 0.0, 0.0)
        self._matrix = np.eye(3)

    def rotate(self, thetax: float, thetay: float, thetaz: float) -> None:
        """
        Compose an incremental rotation into the current orientation.

        The stored angles are re-extracted from the composed matrix.
        """
        self._matrix = self._matrix @ rotation_matrix(thetax, thetay, thetaz)
        euler = Rotation.from_matrix(self._matrix).as_euler(EULER_SEQUENCE)
        self._angles = tuple(float(angle) for angle in euler)

    def apply(self, vectors: np.ndarray) -> np.ndarray:
        """Rotate crystal-frame vectors, shape (..., 3), into the beam frame."""
        return np.asarray(vectors) @ self._matrix.T

    def copy(self) -> "Orientation":
        clone = Orientation.__new__(Orientation)
        clone._angles = self._angles
        clone._matrix = self._matrix.copy()
        return clone

    def __eq__(self, other) -> bool:
        if not isinstance(other, Orientation):
            return NotImplemented
        return np.array_equal(self._matrix, other._matrix)

    def __repr__(self) -> str:
        return (
            f"Orientation(thetax={self.thetax:.6g}, thetay={self.thetay:.6g}, "
            f"thetaz={self.thetaz:.6g})"
        )

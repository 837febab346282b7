"""Type definitions shared across the package."""

from typing import Annotated, TypeAlias, TypeVar

import numpy as np
import numpy.typing as npt

# Type variables for coded values
# CodeT: domain of valid codes (lead codes, gender codes, ...)
# SystemT: domain of code system identifiers (OIDs, vendor names)
CodeT = TypeVar("CodeT", bound=str)
SystemT = TypeVar("SystemT", bound=str)

# Raw integer samples of one sequence, shape: (n_samples,)
Digits: TypeAlias = Annotated[npt.NDArray[np.int64], "Shape: (n_samples,)"]

# Realized physical values of one sequence, shape: (n_samples,)
Samples: TypeAlias = Annotated[npt.NDArray[np.float64], "Shape: (n_samples,)"]

"""
Multichannel Window Layout
==========================

Every operation in the library works on a multichannel window stored
channel-major: channel ``i`` occupies the contiguous block
``[i * n_time_steps, (i + 1) * n_time_steps)`` of the flat buffer. In numpy
terms this is a C-ordered array of shape ``(n_chans, n_time_steps)``.

Geometry is a caller precondition. ``as_window`` reshapes without looking at
the data (the real-time path), ``check_window`` is the optional checked layer
for callers who prefer an error over undefined behavior.

Example:
    >>> buffer = np.zeros(8 * 500)           # flat, channel-major
    >>> x = as_window(buffer, 8, 500)        # view, writes go to buffer
    >>> filter_lowpass(x, 250.0, 40.0)       # buffer is filtered in place

Author: BCI Connect Team
License: MIT
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .errors import WindowShapeError


def as_window(
    x: np.ndarray,
    n_chans: Optional[int] = None,
    n_time_steps: Optional[int] = None
) -> np.ndarray:
    """
    View a buffer as a ``(n_chans, n_time_steps)`` window.

    A 2D array is returned unchanged. A flat buffer is reshaped into a view
    so that in-place operations write through to the caller's memory.
    A 1D buffer without ``n_chans`` is treated as a single channel.

    Args:
        x: Flat channel-major buffer or 2D window
        n_chans: Number of channels (flat buffers only)
        n_time_steps: Samples per channel (flat buffers only)

    Returns:
        2D window sharing memory with ``x`` where possible
    """
    x = np.asarray(x)
    if x.ndim == 2:
        return x
    if n_chans is None:
        n_chans = 1
    if n_time_steps is None:
        n_time_steps = x.size // n_chans
    return x.reshape(n_chans, n_time_steps)


def check_window(
    x: np.ndarray,
    n_chans: Optional[int] = None,
    n_time_steps: Optional[int] = None
) -> np.ndarray:
    """
    Checked variant of ``as_window``.

    Raises:
        WindowShapeError: If the buffer is empty, not real-valued, or its
            size does not match ``n_chans * n_time_steps``
    """
    x = np.asarray(x)
    if x.size == 0:
        raise WindowShapeError("Window must contain at least one sample")
    if not np.issubdtype(x.dtype, np.number) or np.iscomplexobj(x):
        raise WindowShapeError(f"Window must be real-valued, got dtype {x.dtype}")
    if x.ndim > 2:
        raise WindowShapeError(f"Expected 1D or 2D buffer, got {x.ndim}D")

    if x.ndim == 2:
        if n_chans is not None and x.shape[0] != n_chans:
            raise WindowShapeError(f"Expected {n_chans} channels, got {x.shape[0]}")
        if n_time_steps is not None and x.shape[1] != n_time_steps:
            raise WindowShapeError(
                f"Expected {n_time_steps} time steps, got {x.shape[1]}"
            )
        return x

    if n_chans is not None and n_time_steps is not None:
        if x.size != n_chans * n_time_steps:
            raise WindowShapeError(
                f"Buffer length {x.size} does not match "
                f"{n_chans} channels x {n_time_steps} time steps"
            )
    elif n_chans is not None and x.size % n_chans != 0:
        raise WindowShapeError(
            f"Buffer length {x.size} is not divisible by {n_chans} channels"
        )
    return as_window(x, n_chans, n_time_steps)

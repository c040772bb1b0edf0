"""Sample sources and sample file I/O."""

from .samples import (
    FrameSampleSource,
    SyntheticSampleSource,
    frame_to_samples,
    read_samples,
    samples_to_frame,
    write_samples,
)

__all__ = [
    "FrameSampleSource",
    "SyntheticSampleSource",
    "frame_to_samples",
    "read_samples",
    "samples_to_frame",
    "write_samples",
]

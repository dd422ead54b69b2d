"""
The enums used in shaderpass. The enums are all available from the root
``shaderpass`` namespace.

.. currentmodule:: shaderpass.utils.enums

.. autosummary::
    :toctree: utils/enums

    PassName
    Severity

"""

from enum import Enum


__all__ = ["PassName", "Severity", "PASS_ORDER"]


class PassName(str, Enum):
    """The names of the passes (editor tabs) a shader consists of."""

    image = "Image"  #: The pass that renders to the screen. Mandatory.
    buffer_a = "Buffer A"  #: Offscreen pass, sampled as ``BufferA``.
    buffer_b = "Buffer B"  #: Offscreen pass, sampled as ``BufferB``.
    buffer_c = "Buffer C"  #: Offscreen pass, sampled as ``BufferC``.
    buffer_d = "Buffer D"  #: Offscreen pass, sampled as ``BufferD``.
    common = "Common"  #: Shared code, prepended to all other passes.

    def __str__(self):
        return self.value

    @property
    def sampler_name(self):
        """The name of the sampler uniform through which a buffer pass is sampled."""
        if not self.is_buffer:
            raise ValueError(f"Pass {self.value!r} cannot be sampled.")
        return self.value.replace(" ", "")

    @property
    def is_buffer(self):
        return self.value.startswith("Buffer")

    @classmethod
    def from_value(cls, value):
        """Get a PassName from its value or a compact name like 'BufferA'."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if value in (member.value, member.value.replace(" ", "")):
                    return member
        raise ValueError(f"Invalid pass name: {value!r}")


class Severity(str, Enum):
    """The severity of a diagnostic."""

    error = "error"  #: Compilation fails.
    warning = "warning"  #: Compilation succeeds, but the compiler had remarks.

    def __str__(self):
        return self.value


# The order in which passes are compiled and rendered. Common is not
# in here, because it is never compiled on its own.
PASS_ORDER = (
    PassName.buffer_a,
    PassName.buffer_b,
    PassName.buffer_c,
    PassName.buffer_d,
    PassName.image,
)

"""
Adapters package for the Platform Access executor.

Contains the outbound HTTP dispatcher. It encapsulates:

- Credential header attachment
- Mapping of transport failures to typed errors
- Classification of upstream responses

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .dispatcher import CallDispatcher, map_transport_error

__all__ = [
    "CallDispatcher",
    "map_transport_error",
]

"""
Lifecycle Kernel

The shared core of the entity lifecycle & approval engine:
- Declarative state machines per entity kind
- Pure guard evaluation with structured reasons
- Compare-and-set status writes
- Append-only, hash-chained transition audit trail
"""

__version__ = "0.1.0"

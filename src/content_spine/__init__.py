"""
content-spine — a schema-first content gateway.

Producers register versioned schemas, push records that are validated
against them and read entries back through cursor pagination and field
filters.  Loaders pull records from upstream sources on a job schedule.

Entry points:
    - :func:`content_spine.runtime.build_runtime` wires every component
    - ``content-spine`` CLI (:mod:`content_spine.cli.app`)
"""

__version__ = "0.1.0"

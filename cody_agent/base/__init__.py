"""Base layer: leaf primitives with no dependency on the service layer.

Exports are kept deliberately small; import from the submodules
(``cody_agent.base.errors``, ``.cancellation``, ``.streaming``...) directly.
"""

"""Admin mutation package."""

from apexfx.admin.gateway import AdminMutationGateway

__all__ = ["AdminMutationGateway"]

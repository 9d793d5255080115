# Container command building and bind-mount planning

from .builder import SingularityBuilder
from .mounts import ContainerMountPlanner

__all__ = ["ContainerMountPlanner", "SingularityBuilder"]

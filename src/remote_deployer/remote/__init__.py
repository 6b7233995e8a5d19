"""Steps executed against the remote host."""

from .cleanup import teardown
from .container import ContainerDeployer, collect_deploy_files, find_build_file
from .nginx import NginxConfigurator, render_server_block
from .provision import HostProvisioner
from .validate import DeploymentValidator, HttpProbe

__all__ = [
    "ContainerDeployer",
    "DeploymentValidator",
    "HostProvisioner",
    "HttpProbe",
    "NginxConfigurator",
    "collect_deploy_files",
    "find_build_file",
    "render_server_block",
    "teardown",
]

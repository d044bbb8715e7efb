"""
Remote Executor Port

Architectural Intent:
- Port interface for configuring nodes after a node group becomes Active
- Defines the two primitives the control plane needs: run a command and
  copy a file, each over its own authenticated channel
- Implemented by the Fabric adapter
"""

from abc import ABC, abstractmethod
from kubeplane.domain.value_objects.connection_info import ConnectionInfo


class RemoteExecutorPort(ABC):
    """
    Port interface for executing commands on provisioned nodes.
    """

    @abstractmethod
    async def run_command(self, connection: ConnectionInfo, command: str) -> str:
        """
        Runs a command on the node and returns its stdout, trailing
        newlines stripped. Raises RemoteExecutionError on failure.
        """
        pass

    @abstractmethod
    async def copy_file(
        self, connection: ConnectionInfo, local_path: str, remote_path: str
    ) -> None:
        """
        Copies a local file to the node.
        Raises RemoteExecutionError on failure.
        """
        pass

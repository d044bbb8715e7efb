"""
Configure Nodes Use Case

Architectural Intent:
- Post-provisioning step for a node group that has just become Active
- Copies files and then runs commands on every node through the
  RemoteExecutorPort; one channel per primitive, opened and closed by the
  executor
- Hosts run in parallel; the steps on a single host run in order

Design Decisions:
- Node addresses come from the request, or from the node group's node IIDs
  (name_id carries "host" or "host:port") when the request names none
- A failure on any host is raised as RemoteExecutionError after every host
  has finished, naming all failed hosts
"""

import asyncio
import logging
import shlex
from typing import Optional

from kubeplane.application.dtos.node_group_dtos import PostProvisionRequest
from kubeplane.domain.entities.node_group import NodeGroupInfo
from kubeplane.domain.errors import RemoteExecutionError
from kubeplane.domain.ports.remote_executor_port import RemoteExecutorPort
from kubeplane.domain.value_objects.connection_info import ConnectionInfo

logger = logging.getLogger(__name__)


class NodeConfigurator:
    def __init__(
        self,
        remote_executor: RemoteExecutorPort,
        user: str = "root",
        key_path: Optional[str] = None,
        connect_timeout: int = 10,
    ):
        self.remote_executor = remote_executor
        self.user = user
        self.key_path = key_path
        self.connect_timeout = connect_timeout

    def connections_for(
        self, node_group: NodeGroupInfo, request: PostProvisionRequest
    ) -> list[ConnectionInfo]:
        hosts = request.hosts or tuple(
            node.name_id for node in node_group.nodes if node.name_id
        )
        return [
            ConnectionInfo.parse(
                host,
                user=self.user,
                key_path=self.key_path,
                connect_timeout=self.connect_timeout,
            )
            for host in hosts
        ]

    async def _configure_host(
        self, connection: ConnectionInfo, request: PostProvisionRequest
    ) -> list[str]:
        for local_path, remote_path in request.files:
            await self.remote_executor.copy_file(connection, local_path, remote_path)
        outputs = []
        for command in request.commands:
            outputs.append(await self.remote_executor.run_command(connection, command))
        return outputs

    async def configure(
        self, node_group: NodeGroupInfo, request: PostProvisionRequest
    ) -> dict[str, list[str]]:
        """
        Apply request to every node of node_group.

        Returns:
            Command outputs keyed by "user@host:port", in command order.
        """
        connections = self.connections_for(node_group, request)
        if not connections:
            raise RemoteExecutionError(
                f"Node group {node_group.iid} reports no node addresses",
                operation="ConfigureNodes",
                target=node_group.iid,
            )

        logger.info(
            "Configuring %d node(s) of %s: %s",
            len(connections), node_group.iid,
            "; ".join(shlex.quote(c) for c in request.commands) or "files only",
        )
        results = await asyncio.gather(
            *(self._configure_host(c, request) for c in connections),
            return_exceptions=True,
        )

        outputs: dict[str, list[str]] = {}
        failed: list[str] = []
        for connection, result in zip(connections, results):
            if isinstance(result, BaseException):
                logger.error("Configuration failed on %s: %s", connection, result)
                failed.append(str(connection))
            else:
                outputs[str(connection)] = result
        if failed:
            raise RemoteExecutionError(
                f"Configuration failed on {len(failed)} of {len(connections)} "
                f"node(s): {', '.join(failed)}",
                operation="ConfigureNodes",
                target=node_group.iid,
            )
        return outputs

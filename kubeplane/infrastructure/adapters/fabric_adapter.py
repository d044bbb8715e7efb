"""
Fabric Adapter

Architectural Intent:
- Infrastructure adapter implementing RemoteExecutorPort via Fabric/SSH
- Configures nodes of freshly provisioned node groups: run a command, copy
  a file
- Every call opens its own Connection and closes it before returning,
  whatever the outcome

Security:
- SSH connections use connect_timeout; key material is passed through
  connect_kwargs (key_filename or an in-memory RSA, ECDSA or Ed25519 pkey)
  and never logged
- A key that cannot be parsed fails the call like any connection error
- Without explicit key material the agent and ~/.ssh keys are tried
- Copied files are made executable (0755) on the node
"""

import asyncio
import io
import logging
import shlex

import paramiko
from fabric import Connection

from kubeplane.domain.errors import RemoteExecutionError
from kubeplane.domain.ports.remote_executor_port import RemoteExecutorPort
from kubeplane.domain.value_objects.connection_info import ConnectionInfo

logger = logging.getLogger(__name__)

# tried in order for inline keys
_KEY_TYPES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


def load_private_key(text: str) -> paramiko.PKey:
    """Parse an inline private key of any supported type."""
    for key_type in _KEY_TYPES:
        try:
            return key_type.from_private_key(io.StringIO(text))
        except (paramiko.SSHException, ValueError) as e:
            logger.debug("Private key is not %s: %s", key_type.__name__, e)
    raise paramiko.SSHException(
        "Private key is malformed or of an unsupported type"
    )


class FabricAdapter(RemoteExecutorPort):
    """Adapter implementing RemoteExecutorPort via Fabric/SSH."""

    def _connect_kwargs(self, connection: ConnectionInfo) -> dict:
        if connection.private_key:
            return {
                "pkey": load_private_key(connection.private_key),
                "allow_agent": False,
                "look_for_keys": False,
            }
        if connection.key_path:
            return {
                "key_filename": connection.key_path,
                "allow_agent": False,
                "look_for_keys": False,
            }
        return {"allow_agent": True, "look_for_keys": True}

    def _get_connection(self, connection: ConnectionInfo) -> Connection:
        return Connection(
            host=connection.host,
            user=connection.user,
            port=connection.port,
            connect_timeout=connection.connect_timeout,
            connect_kwargs=self._connect_kwargs(connection),
        )

    def _run(self, connection: ConnectionInfo, command: str) -> str:
        conn = None
        try:
            conn = self._get_connection(connection)
            result = conn.run(command, hide=True, warn=True)
        except Exception as e:
            raise RemoteExecutionError(
                f"Cannot run command on {connection}",
                operation="RunCommand",
                target=str(connection),
                provider_message=str(e),
            ) from e
        finally:
            if conn is not None:
                conn.close()
        if result.failed:
            raise RemoteExecutionError(
                f"Command exited {result.exited} on {connection}",
                operation="RunCommand",
                target=str(connection),
                provider_message=result.stderr.strip(),
            )
        return result.stdout.rstrip("\n")

    def _put(self, connection: ConnectionInfo, local_path: str, remote_path: str) -> None:
        conn = None
        try:
            conn = self._get_connection(connection)
            conn.put(local_path, remote=remote_path)
            conn.run(f"chmod 0755 {shlex.quote(remote_path)}", hide=True)
        except Exception as e:
            raise RemoteExecutionError(
                f"Cannot copy {local_path} to {connection}:{remote_path}",
                operation="CopyFile",
                target=str(connection),
                provider_message=str(e),
            ) from e
        finally:
            if conn is not None:
                conn.close()

    async def run_command(self, connection: ConnectionInfo, command: str) -> str:
        logger.debug("Running on %s: %s", connection, command)
        return await asyncio.to_thread(self._run, connection, command)

    async def copy_file(
        self, connection: ConnectionInfo, local_path: str, remote_path: str
    ) -> None:
        logger.debug("Copying %s to %s:%s", local_path, connection, remote_path)
        await asyncio.to_thread(self._put, connection, local_path, remote_path)

"""Installation engine contract and its ansible-playbook implementation."""
import json
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from ..config import Config
from ..errors import ExecutionError
from .plan import POOLS, Node, Plan

logger = logging.getLogger("ketctl.executor")

NODE_ROLES = ("worker", "ingress", "storage")


class Executor(ABC):
    """Runs the installation workflow against the nodes of a plan."""

    @abstractmethod
    def run_play(self, task: str, plan: Plan, restart_services: bool = False) -> None:
        pass

    @abstractmethod
    def install(self, plan: Plan, restart_services: bool = False) -> None:
        pass

    @abstractmethod
    def run_preflight_check(self, plan: Plan) -> None:
        pass

    @abstractmethod
    def run_new_node_preflight_check(self, plan: Plan, node: Node) -> None:
        pass

    @abstractmethod
    def run_smoke_test(self, plan: Plan) -> None:
        pass

    @abstractmethod
    def generate_certificates(self, plan: Plan, force: bool = False) -> None:
        pass

    @abstractmethod
    def validate_certificates(self, plan: Plan) -> Tuple[bool, List[str]]:
        pass

    @abstractmethod
    def add_node(self, plan: Plan, node: Node, roles: Sequence[str], restart_services: bool = False) -> Plan:
        pass


def render_inventory(plan: Plan, extra_groups: Optional[Dict[str, List[Node]]] = None) -> str:
    """Render an INI inventory with one group per node pool."""
    groups = {name: plan.pool(name).nodes for name in POOLS}
    groups.update(extra_groups or {})
    lines = []
    for group, nodes in groups.items():
        lines.append(f"[{group}]")
        for node in nodes:
            line = f"{node.host} ansible_host={node.ip}"
            if node.internal_ip:
                line += f" internal_ipv4={node.internal_ip}"
            lines.append(line)
        lines.append("")
    ssh = plan.cluster.ssh
    lines.extend([
        "[all:vars]",
        f"ansible_user={ssh.user}",
        f"ansible_port={ssh.port}",
        f"ansible_ssh_private_key_file={os.path.expanduser(ssh.key)}",
        "ansible_ssh_common_args='-o StrictHostKeyChecking=no -o UserKnownHostsFile=/dev/null'",
    ])
    return "\n".join(lines) + "\n"


class AnsibleExecutor(Executor):
    """Executor backed by the ``ansible-playbook`` binary.

    The inventory and the plan variables are written to the generated assets
    directory before each run.
    """

    def __init__(
        self,
        generated_dir: str,
        ansible_dir: Optional[str] = None,
        verbose: bool = False,
        output_format: str = "simple",
    ):
        if output_format not in ("simple", "raw"):
            raise ValueError(f"output format {output_format!r} is not supported")
        self.generated_dir = Path(generated_dir)
        self.ansible_dir = Path(ansible_dir or Config.ANSIBLE_DIR)
        self.verbose = verbose
        self.output_format = output_format

    @property
    def keys_dir(self) -> Path:
        return self.generated_dir / "keys"

    def _prepare(self, plan: Plan, extra_groups: Optional[Dict[str, List[Node]]] = None) -> Tuple[Path, Path]:
        self.generated_dir.mkdir(parents=True, exist_ok=True)
        inventory = self.generated_dir / "inventory.ini"
        inventory.write_text(render_inventory(plan, extra_groups))
        plan_vars = self.generated_dir / "plan-vars.yaml"
        with open(plan_vars, "w") as f:
            yaml.safe_dump({"plan": plan.to_document(), "tls_directory": str(self.keys_dir)}, f,
                           default_flow_style=False, sort_keys=False)
        return inventory, plan_vars

    def _run_playbook(
        self,
        playbook: str,
        plan: Plan,
        extra_vars: Optional[Dict[str, Any]] = None,
        limit: Optional[str] = None,
        extra_groups: Optional[Dict[str, List[Node]]] = None,
    ) -> None:
        inventory, plan_vars = self._prepare(plan, extra_groups)
        cmd = [
            Config.ANSIBLE_BIN,
            "-i", str(inventory),
            str(self.ansible_dir / "playbooks" / playbook),
            "--extra-vars", f"@{plan_vars}",
        ]
        if extra_vars:
            cmd += ["--extra-vars", json.dumps(extra_vars)]
        if limit:
            cmd += ["--limit", limit]
        if self.verbose:
            cmd.append("-vvv")

        env = dict(os.environ, ANSIBLE_HOST_KEY_CHECKING="False")
        logger.info(f"🔧 Running playbook {playbook}")
        logger.debug(f"Command: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd, env=env, text=True,
                capture_output=self.output_format == "simple",
            )
        except OSError as e:
            raise ExecutionError(f"could not run {Config.ANSIBLE_BIN}: {e}") from e
        if result.returncode != 0:
            if result.stdout:
                logger.error(result.stdout)
            raise ExecutionError(f"playbook {playbook} failed with exit code {result.returncode}")
        logger.info(f"✅ Playbook {playbook} completed")

    def run_play(self, task: str, plan: Plan, restart_services: bool = False) -> None:
        playbook = task if task.endswith((".yaml", ".yml")) else f"{task}.yaml"
        self._run_playbook(playbook, plan, {"force_restart": restart_services})

    def install(self, plan: Plan, restart_services: bool = False) -> None:
        self._run_playbook("kubernetes.yaml", plan, {"force_restart": restart_services})

    def run_preflight_check(self, plan: Plan) -> None:
        self._run_playbook("preflight.yaml", plan)

    def run_new_node_preflight_check(self, plan: Plan, node: Node) -> None:
        self._run_playbook("preflight.yaml", plan, limit=node.host, extra_groups={"new_node": [node]})

    def run_smoke_test(self, plan: Plan) -> None:
        self._run_playbook("smoketest.yaml", plan)

    def generate_certificates(self, plan: Plan, force: bool = False) -> None:
        self.keys_dir.mkdir(parents=True, exist_ok=True)
        self._run_playbook("tls.yaml", plan, {"force_regenerate": force}, limit="localhost")

    def validate_certificates(self, plan: Plan) -> Tuple[bool, List[str]]:
        """Check that an existing CA is complete. A missing keys dir is generated later."""
        if not self.keys_dir.exists():
            return True, []
        errors = [
            f"{name} is missing from {self.keys_dir}"
            for name in ("ca.pem", "ca-key.pem")
            if not (self.keys_dir / name).exists()
        ]
        return not errors, errors

    def add_node(self, plan: Plan, node: Node, roles: Sequence[str], restart_services: bool = False) -> Plan:
        """Install ``node`` with ``roles`` and return the plan that includes it."""
        for role in roles:
            if role not in NODE_ROLES:
                raise ValueError(f"invalid role {role!r}, options {NODE_ROLES}")
        updated = plan.model_copy(deep=True)
        for role in roles:
            group = updated.pool(role)
            group.nodes.append(node.model_copy(deep=True))
            group.expected_count += 1
        self._run_playbook(
            "add-node.yaml", updated,
            {"force_restart": restart_services, "new_node_roles": list(roles)},
            limit=node.host,
        )
        return updated


def new_executor(generated_dir: str, verbose: bool = False, output_format: str = "simple") -> Executor:
    return AnsibleExecutor(generated_dir, verbose=verbose, output_format=output_format)

"""Infrastructure provisioning contract and its terraform implementation."""
import getpass
import json
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .config import Config
from .errors import ExecutionError
from .install.plan import POOLS, Node, Plan

logger = logging.getLogger("ketctl.provision")


@dataclass
class ProvisionOptions:
    # required when the change scales the cluster down
    allow_destruction: bool = False


class Provisioner(ABC):
    """Creates and destroys the machines described by a plan."""

    @abstractmethod
    def provision(self, plan: Plan, options: ProvisionOptions) -> Plan:
        pass

    @abstractmethod
    def destroy(self, provider: str, cluster_name: str) -> None:
        pass


class TerraformProvisioner(Provisioner):
    """Provisioner driving the ``terraform`` binary.

    Each provider lives in ``<providers_dir>/<provider>`` and is expected to
    output ``<pool>_nodes`` as lists of ``{host, ip, internalip}`` objects.
    State is kept per cluster under ``state_dir``.
    """

    def __init__(
        self,
        state_dir: str,
        providers_dir: Optional[str] = None,
        cluster_owner: Optional[str] = None,
    ):
        self.state_dir = Path(state_dir)
        self.providers_dir = Path(providers_dir or Config.PROVIDERS_DIR)
        self.cluster_owner = cluster_owner or getpass.getuser()

    def _provider_dir(self, provider: str) -> Path:
        if not provider:
            raise ExecutionError("plan does not specify a provisioner provider")
        path = self.providers_dir / provider
        if not path.is_dir():
            raise ExecutionError(f"provider {provider!r} not found in {self.providers_dir}")
        return path

    def _cluster_dir(self, cluster_name: str) -> Path:
        path = self.state_dir / cluster_name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _terraform(self, provider_dir: Path, cluster_dir: Path, *args: str) -> str:
        cmd = [Config.TERRAFORM_BIN, f"-chdir={provider_dir}", *args]
        env = dict(os.environ, TF_DATA_DIR=str(cluster_dir / ".terraform"), TF_IN_AUTOMATION="1")
        logger.debug(f"Command: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, env=env, capture_output=True, text=True)
        except OSError as e:
            raise ExecutionError(f"could not run {Config.TERRAFORM_BIN}: {e}") from e
        if result.returncode != 0:
            raise ExecutionError(f"terraform {args[0]} failed: {result.stderr.strip()}")
        return result.stdout

    def _write_vars(self, plan: Plan, cluster_dir: Path) -> Path:
        tf_vars: Dict[str, Any] = {
            "cluster_name": plan.cluster.name,
            "cluster_owner": self.cluster_owner,
            "ssh_user": plan.cluster.ssh.user,
            "ssh_key": os.path.expanduser(plan.cluster.ssh.key),
        }
        for pool in POOLS:
            tf_vars[f"{pool}_count"] = plan.pool(pool).expected_count
        tf_vars.update(plan.provisioner.options or {})
        path = cluster_dir / "terraform.tfvars.json"
        path.write_text(json.dumps(tf_vars, indent=2))
        return path

    @staticmethod
    def _planned_deletions(plan_json: str) -> List[str]:
        changes = json.loads(plan_json).get("resource_changes", [])
        return [c["address"] for c in changes if "delete" in c.get("change", {}).get("actions", [])]

    def provision(self, plan: Plan, options: ProvisionOptions) -> Plan:
        """Apply the provider's infrastructure and record the resulting nodes in the plan."""
        provider_dir = self._provider_dir(plan.provisioner.provider)
        cluster_dir = self._cluster_dir(plan.cluster.name)
        state = str(cluster_dir / "terraform.tfstate")
        var_file = str(self._write_vars(plan, cluster_dir))
        plan_out = str(cluster_dir / "terraform.tfplan")

        logger.info(f"🚧 Provisioning cluster {plan.cluster.name} on {plan.provisioner.provider}")
        self._terraform(provider_dir, cluster_dir, "init", "-input=false")
        self._terraform(provider_dir, cluster_dir, "plan", "-input=false",
                        f"-state={state}", f"-var-file={var_file}", f"-out={plan_out}")
        deletions = self._planned_deletions(self._terraform(provider_dir, cluster_dir, "show", "-json", plan_out))
        if deletions and not options.allow_destruction:
            raise ExecutionError(
                f"provisioning would destroy {len(deletions)} resource(s) ({', '.join(deletions)}); "
                "re-run with --allow-destruction to proceed"
            )
        self._terraform(provider_dir, cluster_dir, "apply", "-input=false", f"-state={state}", plan_out)
        outputs = json.loads(self._terraform(provider_dir, cluster_dir, "output", "-json", f"-state={state}"))

        updated = plan.model_copy(deep=True)
        for pool in POOLS:
            output = outputs.get(f"{pool}_nodes")
            if output is None:
                continue
            try:
                nodes = [Node.model_validate(n) for n in output.get("value", [])]
            except PydanticValidationError as e:
                raise ExecutionError(f"unexpected terraform output for {pool} nodes: {e}") from e
            group = updated.pool(pool)
            group.nodes = nodes
            group.expected_count = len(nodes)
        fqdn = outputs.get("master_lb_fqdn", {}).get("value")
        if fqdn:
            updated.master.load_balanced_fqdn = fqdn
            updated.master.load_balanced_short_name = fqdn.split(".")[0]
        logger.info(f"✅ Provisioned {len(updated.all_nodes())} node(s)")
        return updated

    def destroy(self, provider: str, cluster_name: str) -> None:
        provider_dir = self._provider_dir(provider)
        cluster_dir = self._cluster_dir(cluster_name)
        args = ["destroy", "-auto-approve", "-input=false", f"-state={cluster_dir / 'terraform.tfstate'}"]
        var_file = cluster_dir / "terraform.tfvars.json"
        if var_file.exists():
            args.append(f"-var-file={var_file}")
        logger.info(f"🗑️ Destroying cluster {cluster_name} on {provider}")
        self._terraform(provider_dir, cluster_dir, *args)
        logger.info(f"✅ Cluster {cluster_name} destroyed")

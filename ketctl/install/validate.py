"""Validation of plans, nodes and SSH connectivity.

Every check collects all of its findings instead of stopping at the first
one, and returns ``(ok, errors)``.
"""
import ipaddress
import logging
import os
import re
from typing import List, Tuple

import paramiko

from ..config import Config
from ..utils import is_valid_ip
from .plan import MasterNodeGroup, Node, Plan, SSHConfig

logger = logging.getLogger("ketctl.validate")

Result = Tuple[bool, List[str]]

CNI_PROVIDERS = ("calico", "weave", "contiv", "custom")
CALICO_MODES = ("overlay", "routed")
CALICO_LOG_LEVELS = ("warning", "info", "debug")
DNS_PROVIDERS = ("kubedns", "coredns")
HEAPSTER_SERVICE_TYPES = ("ClusterIP", "NodePort", "LoadBalancer", "ExternalName")
PACKAGE_MANAGER_PROVIDERS = ("helm",)

_VERSION_RE = re.compile(r"^v?\d+\.\d+\.\d+$")
_DURATION_RE = re.compile(r"^(?:\d+h)?(?:\d+m)?(?:\d+s)?$")


def validate_node(node: Node) -> Result:
    errors = []
    if not node.host:
        errors.append("Node host field is required")
    if not node.ip:
        errors.append("Node IP field is required")
    elif not is_valid_ip(node.ip):
        errors.append(f"Invalid IP provided: {node.ip!r}")
    if node.internal_ip and not is_valid_ip(node.internal_ip):
        errors.append(f"Invalid internal IP provided: {node.internal_ip!r}")
    for key in node.labels:
        if not key:
            errors.append("Node labels must have a non-empty key")
    return not errors, errors


def _validate_duration(name: str, value: str) -> List[str]:
    if not value or not _DURATION_RE.match(value):
        return [f"{name} must be a duration such as '17520h', got {value!r}"]
    return []


def _validate_cidr(name: str, value: str):
    try:
        return ipaddress.ip_network(value, strict=False), []
    except ValueError:
        return None, [f"{name} must be a valid CIDR block, got {value!r}"]


def _validate_group(name: str, group, required: bool) -> List[str]:
    errors = []
    if required and group.expected_count < 1:
        errors.append(f"{name}: expected_count must be at least 1")
    if group.expected_count < 0:
        errors.append(f"{name}: expected_count cannot be negative")
    if group.expected_count != len(group.nodes):
        errors.append(
            f"{name}: expected {group.expected_count} nodes but {len(group.nodes)} are defined"
        )
    seen_hosts = set()
    for i, node in enumerate(group.nodes):
        _, node_errors = validate_node(node)
        errors.extend(f"{name} node {i}: {e}" for e in node_errors)
        if node.host and node.host in seen_hosts:
            errors.append(f"{name}: host {node.host!r} is defined more than once")
        seen_hosts.add(node.host)
    if isinstance(group, MasterNodeGroup):
        if not group.load_balanced_fqdn:
            errors.append(f"{name}: load_balanced_fqdn is required")
        if not group.load_balanced_short_name:
            errors.append(f"{name}: load_balanced_short_name is required")
    return errors


def validate_plan(plan: Plan) -> Result:
    """Validate every section of the plan and report all findings."""
    errors = []

    cluster = plan.cluster
    if not cluster.name:
        errors.append("cluster.name is required")
    if not _VERSION_RE.match(cluster.version):
        errors.append(f"cluster.version must look like 'v1.10.5', got {cluster.version!r}")

    ssh = cluster.ssh
    if not ssh.user:
        errors.append("cluster.ssh.user is required")
    if not ssh.key:
        errors.append("cluster.ssh.ssh_key is required")
    elif not os.path.isfile(os.path.expanduser(ssh.key)):
        errors.append(f"cluster.ssh.ssh_key {ssh.key!r} does not exist")
    if not 0 < ssh.port < 65536:
        errors.append(f"cluster.ssh.ssh_port must be between 1 and 65535, got {ssh.port}")

    pod_net, cidr_errors = _validate_cidr("cluster.networking.pod_cidr_block", cluster.networking.pod_cidr_block)
    errors.extend(cidr_errors)
    service_net, cidr_errors = _validate_cidr(
        "cluster.networking.service_cidr_block", cluster.networking.service_cidr_block
    )
    errors.extend(cidr_errors)
    if pod_net is not None and service_net is not None and pod_net.overlaps(service_net):
        errors.append("cluster.networking pod and service CIDR blocks overlap")

    errors.extend(_validate_duration("cluster.certificates.expiry", cluster.certificates.expiry))
    errors.extend(_validate_duration("cluster.certificates.ca_expiry", cluster.certificates.ca_expiry))

    storage = plan.docker.storage
    if storage.direct_lvm_block_device.path:
        if not os.path.isabs(storage.direct_lvm_block_device.path):
            errors.append("docker.storage.direct_lvm_block_device.path must be an absolute path")
        if storage.driver != "devicemapper":
            errors.append("docker.storage.driver must be 'devicemapper' when a direct-lvm block device is set")

    registry = plan.docker_registry
    if registry.ca and not registry.server:
        errors.append("docker_registry.server is required when a CA is provided")
    if bool(registry.username) != bool(registry.password):
        errors.append("docker_registry.username and docker_registry.password must be set together")

    errors.extend(_validate_add_ons(plan))

    errors.extend(_validate_group("etcd", plan.etcd, required=True))
    errors.extend(_validate_group("master", plan.master, required=True))
    errors.extend(_validate_group("worker", plan.worker, required=True))
    errors.extend(_validate_group("ingress", plan.ingress, required=False))
    errors.extend(_validate_group("storage", plan.storage, required=False))

    for i, volume in enumerate(plan.nfs.volumes):
        if not volume.host:
            errors.append(f"nfs volume {i}: nfs_host is required")
        if not volume.path.startswith("/"):
            errors.append(f"nfs volume {i}: mount_path must start with '/'")

    return not errors, errors


def _validate_add_ons(plan: Plan) -> List[str]:
    errors = []
    add_ons = plan.add_ons
    cni = add_ons.cni
    if cni is not None and not cni.disable:
        if cni.provider not in CNI_PROVIDERS:
            errors.append(f"add_ons.cni.provider must be one of {CNI_PROVIDERS}, got {cni.provider!r}")
        if cni.provider == "calico":
            calico = cni.options.calico
            if calico.mode not in CALICO_MODES:
                errors.append(f"add_ons.cni.options.calico.mode must be one of {CALICO_MODES}")
            if calico.log_level not in CALICO_LOG_LEVELS:
                errors.append(f"add_ons.cni.options.calico.log_level must be one of {CALICO_LOG_LEVELS}")
    if not add_ons.dns.disable and add_ons.dns.provider not in DNS_PROVIDERS:
        errors.append(f"add_ons.dns.provider must be one of {DNS_PROVIDERS}, got {add_ons.dns.provider!r}")
    heapster = add_ons.heapster
    if heapster is not None and not heapster.disable:
        if heapster.options.heapster.replicas < 1:
            errors.append("add_ons.heapster.options.heapster.replicas must be at least 1")
        if heapster.options.heapster.service_type not in HEAPSTER_SERVICE_TYPES:
            errors.append(
                f"add_ons.heapster.options.heapster.service_type must be one of {HEAPSTER_SERVICE_TYPES}"
            )
    package_manager = add_ons.package_manager
    if package_manager.provider and package_manager.provider not in PACKAGE_MANAGER_PROVIDERS:
        errors.append(
            f"add_ons.package_manager.provider must be one of {PACKAGE_MANAGER_PROVIDERS}, "
            f"got {package_manager.provider!r}"
        )
    return errors


def validate_ssh_connection(ssh: SSHConfig, node: Node, label: str = "Node") -> Result:
    """Open and close an SSH session to ``node`` with the plan's credentials."""
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    try:
        client.connect(
            hostname=node.ip,
            port=ssh.port,
            username=ssh.user,
            key_filename=os.path.expanduser(ssh.key),
            timeout=Config.SSH_TIMEOUT,
            allow_agent=False,
            look_for_keys=False,
        )
    except (paramiko.SSHException, OSError) as e:
        logger.debug(f"SSH connection to {node.ip} failed: {e}")
        return False, [f"{label} {node.host} ({node.ip}): SSH connection failed: {e}"]
    finally:
        client.close()
    return True, []


def validate_plan_ssh_connections(plan: Plan) -> Result:
    errors = []
    for node in plan.all_nodes():
        _, node_errors = validate_ssh_connection(plan.cluster.ssh, node)
        errors.extend(node_errors)
    return not errors, errors

"""Default values for the installation plan.

``apply_defaults`` runs once after migration on every load. Every assignment
is guarded by a zero-value check, so values set by the user survive and a
second pass changes nothing. ``build_from_template`` produces the plan written
by ``ketctl install plan``.
"""
from dataclasses import dataclass

from .plan import (
    CNI,
    Dashboard,
    DockerLogs,
    HeapsterMonitoring,
    Node,
    NFSVolume,
    Plan,
)

KUBERNETES_VERSION = "v1.10.5"
KUBERNETES_MINOR_VERSION = "v1.10"

DEFAULT_CERT_EXPIRY = "17520h"
DEFAULT_CA_EXPIRY = "17520h"
DEFAULT_POD_CIDR = "172.16.0.0/16"
DEFAULT_SERVICE_CIDR = "172.20.0.0/16"
DEFAULT_SSH_PORT = 22

DEFAULT_LOG_DRIVER = "json-file"
DEFAULT_LOG_OPTS = {"max-size": "50m", "max-file": "1"}

# direct-lvm thin pool tuning, formerly hardcoded in the docker playbooks
THINPOOL_PERCENT = "95"
THINPOOL_METAPERCENT = "1"
THINPOOL_AUTOEXTEND_THRESHOLD = "80"
THINPOOL_AUTOEXTEND_PERCENT = "20"

CNI_PROVIDER_CALICO = "calico"
CNI_PROVIDER_WEAVE = "weave"
CALICO_MODE = "overlay"
CALICO_LOG_LEVEL = "info"
CALICO_FELIX_INPUT_MTU = 1440
CALICO_WORKLOAD_MTU = 1500
CALICO_IP_AUTODETECTION_METHOD = "first-found"

DNS_PROVIDER = "kubedns"

HEAPSTER_REPLICAS = 2
HEAPSTER_SINK = "influxdb:http://heapster-influxdb.kube-system.svc:8086"
HEAPSTER_SERVICE_TYPE = "ClusterIP"

PACKAGE_MANAGER_PROVIDER = "helm"
HELM_NAMESPACE = "kube-system"


@dataclass
class PlanTemplateOptions:
    """Options requested when generating a plan file template."""
    cluster_name: str = "kubernetes"
    infrastructure_provisioner: str = ""
    etcd_nodes: int = 1
    master_nodes: int = 1
    worker_nodes: int = 1
    ingress_nodes: int = 0
    storage_nodes: int = 0
    nfs_volumes: int = 0
    admin_password: str = ""


def _default_calico(cni: CNI) -> None:
    calico = cni.options.calico
    if not calico.log_level:
        calico.log_level = CALICO_LOG_LEVEL
    if not calico.felix_input_mtu:
        calico.felix_input_mtu = CALICO_FELIX_INPUT_MTU
    if not calico.workload_mtu:
        calico.workload_mtu = CALICO_WORKLOAD_MTU
    if not calico.ip_autodetection_method:
        calico.ip_autodetection_method = CALICO_IP_AUTODETECTION_METHOD


def apply_defaults(plan: Plan) -> Plan:
    """Return a copy of ``plan`` with unset fields filled with defaults."""
    p = plan.model_copy(deep=True)

    if not p.cluster.version:
        p.cluster.version = KUBERNETES_VERSION

    logs = p.docker.logs
    if not logs.driver:
        logs.driver = DEFAULT_LOG_DRIVER
        if not logs.opts:
            logs.opts = dict(DEFAULT_LOG_OPTS)

    storage = p.docker.storage
    block_device = storage.direct_lvm_block_device
    # only needed when docker creates the thin pool on a block device
    if storage.driver == "devicemapper" and block_device.path:
        storage.opts.setdefault("dm.thinpooldev", "/dev/mapper/docker-thinpool")
        storage.opts.setdefault("dm.use_deferred_removal", "true")
        storage.opts.setdefault("dm.use_deferred_deletion", "false")
    if not block_device.thinpool_percent:
        block_device.thinpool_percent = THINPOOL_PERCENT
    if not block_device.thinpool_metapercent:
        block_device.thinpool_metapercent = THINPOOL_METAPERCENT
    if not block_device.thinpool_autoextend_threshold:
        block_device.thinpool_autoextend_threshold = THINPOOL_AUTOEXTEND_THRESHOLD
    if not block_device.thinpool_autoextend_percent:
        block_device.thinpool_autoextend_percent = THINPOOL_AUTOEXTEND_PERCENT

    add_ons = p.add_ons
    if add_ons.cni is None:
        add_ons.cni = CNI(provider=CNI_PROVIDER_CALICO)
        add_ons.cni.options.calico.mode = CALICO_MODE
    if add_ons.cni.provider == CNI_PROVIDER_CALICO:
        _default_calico(add_ons.cni)

    if not add_ons.dns.provider:
        add_ons.dns.provider = DNS_PROVIDER

    if add_ons.heapster is None:
        add_ons.heapster = HeapsterMonitoring()
    heapster = add_ons.heapster.options.heapster
    if not heapster.replicas:
        heapster.replicas = HEAPSTER_REPLICAS
    if not heapster.sink:
        heapster.sink = HEAPSTER_SINK
    if not heapster.service_type:
        heapster.service_type = HEAPSTER_SERVICE_TYPE

    if not p.cluster.certificates.ca_expiry:
        p.cluster.certificates.ca_expiry = DEFAULT_CA_EXPIRY

    if add_ons.dashboard is None:
        add_ons.dashboard = Dashboard()

    helm = add_ons.package_manager.options.helm
    if not helm.namespace:
        helm.namespace = HELM_NAMESPACE

    return p


def build_from_template(opts: PlanTemplateOptions) -> Plan:
    """Build a complete plan with sensible defaults for the requested shape.

    Each pool is pre-populated with ``expected_count`` empty nodes so that the
    written template shows the structure to fill in by hand.
    """
    p = Plan()

    p.cluster.name = opts.cluster_name
    p.cluster.version = KUBERNETES_VERSION
    p.cluster.admin_password = opts.admin_password
    p.cluster.disable_package_installation = False
    p.cluster.disconnected_installation = False
    p.cluster.ssh.port = DEFAULT_SSH_PORT

    p.provisioner.provider = opts.infrastructure_provisioner

    p.cluster.networking.pod_cidr_block = DEFAULT_POD_CIDR
    p.cluster.networking.service_cidr_block = DEFAULT_SERVICE_CIDR
    p.cluster.networking.update_hosts_files = False

    p.cluster.certificates.expiry = DEFAULT_CERT_EXPIRY
    p.cluster.certificates.ca_expiry = DEFAULT_CA_EXPIRY

    p.docker.logs = DockerLogs(driver=DEFAULT_LOG_DRIVER, opts=dict(DEFAULT_LOG_OPTS))
    block_device = p.docker.storage.direct_lvm_block_device
    block_device.thinpool_percent = THINPOOL_PERCENT
    block_device.thinpool_metapercent = THINPOOL_METAPERCENT
    block_device.thinpool_autoextend_threshold = THINPOOL_AUTOEXTEND_THRESHOLD
    block_device.thinpool_autoextend_percent = THINPOOL_AUTOEXTEND_PERCENT

    # calico's IPIP overlay does not work on azure
    if opts.infrastructure_provisioner == "azure":
        p.add_ons.cni = CNI(provider=CNI_PROVIDER_WEAVE)
    else:
        p.add_ons.cni = CNI(provider=CNI_PROVIDER_CALICO)
        p.add_ons.cni.options.calico.mode = CALICO_MODE
        _default_calico(p.add_ons.cni)

    p.add_ons.dns.provider = DNS_PROVIDER

    p.add_ons.heapster = HeapsterMonitoring()
    p.add_ons.heapster.options.heapster.replicas = HEAPSTER_REPLICAS
    p.add_ons.heapster.options.heapster.service_type = HEAPSTER_SERVICE_TYPE
    p.add_ons.heapster.options.heapster.sink = HEAPSTER_SINK

    p.add_ons.package_manager.provider = PACKAGE_MANAGER_PROVIDER
    p.add_ons.package_manager.options.helm.namespace = HELM_NAMESPACE

    p.add_ons.dashboard = Dashboard(disable=False)

    counts = {
        "etcd": opts.etcd_nodes,
        "master": opts.master_nodes,
        "worker": opts.worker_nodes,
        "ingress": opts.ingress_nodes,
        "storage": opts.storage_nodes,
    }
    for name, count in counts.items():
        group = p.pool(name)
        group.expected_count = count
        group.nodes = [Node() for _ in range(count)]

    p.nfs.volumes = [NFSVolume(host="", path="/") for _ in range(opts.nfs_volumes)]

    return p

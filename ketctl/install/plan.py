"""Data model for the installation plan.

Field aliases are the YAML keys of the plan file. Renaming one is a breaking
schema change and needs a rule in ``ketctl.install.migrate``. Fields typed
``Optional[...] = None`` are either deprecated (cleared by migration) or blocks
whose absence drives a default. Keys the model does not know are kept as
extra fields and written back unchanged.
"""
from typing import Any, Dict, List, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScalarText(str):
    """Text of a plain YAML scalar, with the value YAML resolved it to.

    ``1.10`` stays ``"1.10"`` for a string field and becomes ``1.1`` anywhere
    else.
    """

    def __new__(cls, text: str, value: Any):
        obj = super().__new__(cls, text)
        obj.value = value
        return obj


def _leaf_types(annotation) -> set:
    args = get_args(annotation)
    if not args:
        return {annotation}
    leaves = set()
    for arg in args:
        leaves |= _leaf_types(arg)
    return leaves


def _keeps_text(annotation) -> Optional[bool]:
    """None for nested sections, True where the field holds strings."""
    leaves = _leaf_types(annotation)
    if any(isinstance(t, type) and issubclass(t, BaseModel) for t in leaves):
        return None
    if Any in leaves:
        return False
    return str in leaves


def _plain(value: Any, keep_text: bool) -> Any:
    if isinstance(value, ScalarText):
        return str(value) if keep_text else value.value
    if isinstance(value, dict):
        return {_plain(k, True): _plain(v, keep_text) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v, keep_text) for v in value]
    return value


class PlanModel(BaseModel):
    """Base for all plan sections."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _normalize_scalars(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        fields = {}
        for name, field in cls.model_fields.items():
            fields[name] = field
            if field.alias:
                fields[field.alias] = field
        normalized = {}
        for key, value in data.items():
            # an empty YAML value (``labels:``) means "not set"
            if value is None:
                continue
            field = fields.get(key)
            keep_text = False if field is None else _keeps_text(field.annotation)
            normalized[_plain(key, True)] = value if keep_text is None else _plain(value, keep_text)
        return normalized


# Cluster

class Networking(PlanModel):
    type: Optional[str] = None  # deprecated, see migrate_networking_type
    pod_cidr_block: str = ""
    service_cidr_block: str = ""
    update_hosts_files: bool = False
    http_proxy: str = ""
    https_proxy: str = ""
    no_proxy: str = ""


class Certificates(PlanModel):
    expiry: str = ""
    ca_expiry: str = ""


class SSHConfig(PlanModel):
    """SSH credentials shared by every node."""
    user: str = ""
    key: str = Field(default="", alias="ssh_key")
    port: int = Field(default=0, alias="ssh_port")


class KubeAPIServer(PlanModel):
    option_overrides: Dict[str, str] = Field(default_factory=dict)


class CloudProvider(PlanModel):
    provider: str = ""
    config: str = ""


class Cluster(PlanModel):
    name: str = ""
    version: str = ""
    admin_password: str = ""
    disable_package_installation: bool = False
    allow_package_installation: Optional[bool] = None  # deprecated
    disconnected_installation: bool = False
    networking: Networking = Field(default_factory=Networking)
    certificates: Certificates = Field(default_factory=Certificates)
    ssh: SSHConfig = Field(default_factory=SSHConfig)
    kube_apiserver: KubeAPIServer = Field(default_factory=KubeAPIServer)
    cloud_provider: CloudProvider = Field(default_factory=CloudProvider)


# Docker

class DockerLogs(PlanModel):
    driver: str = ""
    opts: Dict[str, str] = Field(default_factory=dict)


class DirectLVMBlockDevice(PlanModel):
    path: str = ""
    thinpool_percent: str = ""
    thinpool_metapercent: str = ""
    thinpool_autoextend_threshold: str = ""
    thinpool_autoextend_percent: str = ""


class DeprecatedDirectLVM(PlanModel):
    enabled: bool = False
    block_device: str = ""
    enable_deferred_deletion: bool = False


class DockerStorage(PlanModel):
    driver: str = ""
    opts: Dict[str, str] = Field(default_factory=dict)
    direct_lvm_block_device: DirectLVMBlockDevice = Field(default_factory=DirectLVMBlockDevice)
    direct_lvm: Optional[DeprecatedDirectLVM] = None


class Docker(PlanModel):
    disable: bool = False
    logs: DockerLogs = Field(default_factory=DockerLogs)
    storage: DockerStorage = Field(default_factory=DockerStorage)


class DockerRegistry(PlanModel):
    """An external registry to pull images from."""
    server: str = ""
    ca: str = Field(default="", alias="CA")
    username: str = ""
    password: str = ""
    address: Optional[str] = None  # deprecated
    port: Optional[int] = None  # deprecated


# Add-ons

class CalicoOptions(PlanModel):
    mode: str = ""
    log_level: str = ""
    workload_mtu: int = 0
    felix_input_mtu: int = 0
    ip_autodetection_method: str = ""


class CNIOptions(PlanModel):
    calico: CalicoOptions = Field(default_factory=CalicoOptions)


class CNI(PlanModel):
    disable: bool = False
    provider: str = ""
    options: CNIOptions = Field(default_factory=CNIOptions)


class DNS(PlanModel):
    disable: bool = False
    provider: str = ""


class HeapsterOptions(PlanModel):
    replicas: int = 0
    service_type: str = ""
    sink: str = ""


class InfluxDBOptions(PlanModel):
    pvc_name: str = ""


class HeapsterMonitoringOptions(PlanModel):
    heapster: HeapsterOptions = Field(default_factory=HeapsterOptions)
    influxdb: InfluxDBOptions = Field(default_factory=InfluxDBOptions)
    heapster_replicas: Optional[int] = None  # deprecated
    influxdb_pvc_name: Optional[str] = None  # deprecated


class HeapsterMonitoring(PlanModel):
    disable: bool = False
    options: HeapsterMonitoringOptions = Field(default_factory=HeapsterMonitoringOptions)


class Dashboard(PlanModel):
    disable: bool = False


class MetricsServer(PlanModel):
    disable: bool = False


class HelmOptions(PlanModel):
    namespace: str = ""


class PackageManagerOptions(PlanModel):
    helm: HelmOptions = Field(default_factory=HelmOptions)


class PackageManager(PlanModel):
    disable: bool = False
    provider: str = ""
    options: PackageManagerOptions = Field(default_factory=PackageManagerOptions)


class Rescheduler(PlanModel):
    disable: bool = False


class AddOns(PlanModel):
    cni: Optional[CNI] = None
    dns: DNS = Field(default_factory=DNS)
    heapster: Optional[HeapsterMonitoring] = None
    dashboard: Optional[Dashboard] = None
    dashboard_deprecated: Optional[Dashboard] = Field(default=None, alias="dashbard")
    metrics_server: MetricsServer = Field(default_factory=MetricsServer)
    package_manager: PackageManager = Field(default_factory=PackageManager)
    rescheduler: Rescheduler = Field(default_factory=Rescheduler)


class DeprecatedPackageManager(PlanModel):
    enabled: bool = False


class Features(PlanModel):
    """Feature toggles used before package_manager moved under add_ons."""
    package_manager: Optional[DeprecatedPackageManager] = None


# Nodes

class Node(PlanModel):
    """A cluster node. Identity is (host, ip, internalip)."""
    host: str = ""
    ip: str = ""
    internal_ip: str = Field(default="", alias="internalip")
    labels: Dict[str, str] = Field(default_factory=dict)

    def identity(self) -> tuple:
        return (self.host, self.ip, self.internal_ip)


class NodeGroup(PlanModel):
    expected_count: int = 0
    nodes: List[Node] = Field(default_factory=list)


class MasterNodeGroup(PlanModel):
    expected_count: int = 0
    load_balanced_fqdn: str = ""
    load_balanced_short_name: str = ""
    nodes: List[Node] = Field(default_factory=list)


class NFSVolume(PlanModel):
    host: str = Field(default="", alias="nfs_host")
    path: str = Field(default="", alias="mount_path")


class NFS(PlanModel):
    volumes: List[NFSVolume] = Field(default_factory=list, alias="nfs_volume")


class Provisioner(PlanModel):
    provider: str = ""
    options: Optional[Dict[str, Any]] = None


POOLS = ("etcd", "master", "worker", "ingress", "storage")


class Plan(PlanModel):
    """The installation plan of a cluster."""

    cluster: Cluster = Field(default_factory=Cluster)
    docker: Docker = Field(default_factory=Docker)
    docker_registry: DockerRegistry = Field(default_factory=DockerRegistry)
    add_ons: AddOns = Field(default_factory=AddOns)
    features: Optional[Features] = None  # deprecated
    etcd: NodeGroup = Field(default_factory=NodeGroup)
    master: MasterNodeGroup = Field(default_factory=MasterNodeGroup)
    worker: NodeGroup = Field(default_factory=NodeGroup)
    ingress: NodeGroup = Field(default_factory=NodeGroup)
    storage: NodeGroup = Field(default_factory=NodeGroup)
    nfs: NFS = Field(default_factory=NFS)
    provisioner: Provisioner = Field(default_factory=Provisioner)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Plan":
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        """Return the plan as plain data keyed by YAML field names."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def pool(self, name: str):
        if name not in POOLS:
            raise KeyError(f"unknown node pool {name!r}")
        return getattr(self, name)

    def all_nodes(self) -> List[Node]:
        """Unique nodes across every pool, in pool order."""
        seen = set()
        nodes = []
        for name in POOLS:
            for node in self.pool(name).nodes:
                if node.identity() in seen:
                    continue
                seen.add(node.identity())
                nodes.append(node)
        return nodes

    def network_configured(self) -> bool:
        """True when a CNI plugin is installed and managed by the plan."""
        cni = self.add_ons.cni
        return cni is not None and not cni.disable and cni.provider != "custom"

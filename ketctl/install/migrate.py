"""Migration of plans written by older releases.

Each rule reads one deprecated field, moves its meaning into the current
schema and clears it, so deprecated keys are never written back. Rules are
independent of each other and return True when they changed the plan.
"""
import logging
from typing import Callable, Tuple

from .plan import CNI, Dashboard, Plan

logger = logging.getLogger("ketctl.migrate")

# package_manager moved from features to add_ons after KET v1.3.3, which had no provider field
LEGACY_PACKAGE_MANAGER_PROVIDER = "helm"

LEGACY_CNI_PROVIDER = "calico"

DEVICEMAPPER_THINPOOL = "/dev/mapper/docker-thinpool"


def migrate_package_manager_feature(plan: Plan) -> bool:
    features = plan.features
    if features is None:
        return False
    plan.features = None
    if features.package_manager is None:
        return False
    package_manager = plan.add_ons.package_manager
    package_manager.disable = not features.package_manager.enabled
    package_manager.provider = LEGACY_PACKAGE_MANAGER_PROVIDER
    return True


def migrate_allow_package_installation(plan: Plan) -> bool:
    allow = plan.cluster.allow_package_installation
    if allow is None:
        return False
    plan.cluster.disable_package_installation = not allow
    plan.cluster.allow_package_installation = None
    return True


def migrate_dashboard(plan: Plan) -> bool:
    deprecated = plan.add_ons.dashboard_deprecated
    if deprecated is None:
        return False
    plan.add_ons.dashboard_deprecated = None
    if plan.add_ons.dashboard is not None:
        return False
    plan.add_ons.dashboard = Dashboard(disable=deprecated.disable)
    return True


def migrate_registry_address(plan: Plan) -> bool:
    registry = plan.docker_registry
    if registry.address is None and registry.port is None:
        return False
    if not registry.server and registry.address and registry.port:
        registry.server = f"{registry.address}:{registry.port}"
    if not registry.server:
        # nothing to replace the legacy fields with yet
        return False
    registry.address = None
    registry.port = None
    return True


def migrate_direct_lvm(plan: Plan) -> bool:
    storage = plan.docker.storage
    legacy = storage.direct_lvm
    if legacy is None:
        return False
    storage.direct_lvm = None
    if not legacy.enabled or storage.opts:
        return False
    storage.driver = "devicemapper"
    storage.opts = {
        "dm.thinpooldev": DEVICEMAPPER_THINPOOL,
        "dm.use_deferred_removal": "true",
        "dm.use_deferred_deletion": str(legacy.enable_deferred_deletion).lower(),
    }
    block_device = storage.direct_lvm_block_device
    block_device.path = legacy.block_device
    block_device.thinpool_percent = "95"
    block_device.thinpool_metapercent = "1"
    block_device.thinpool_autoextend_threshold = "80"
    block_device.thinpool_autoextend_percent = "20"
    return True


def migrate_networking_type(plan: Plan) -> bool:
    """cluster.networking.type was the calico mode before KET v1.5.0."""
    legacy_mode = plan.cluster.networking.type
    if legacy_mode is None:
        return False
    plan.cluster.networking.type = None
    if plan.add_ons.cni is not None or not legacy_mode:
        return False
    cni = CNI(provider=LEGACY_CNI_PROVIDER)
    cni.options.calico.mode = legacy_mode
    plan.add_ons.cni = cni
    return True


def migrate_heapster_options(plan: Plan) -> bool:
    heapster = plan.add_ons.heapster
    if heapster is None:
        return False
    options = heapster.options
    changed = False
    if options.heapster_replicas is not None:
        if options.heapster_replicas:
            options.heapster.replicas = options.heapster_replicas
        options.heapster_replicas = None
        changed = True
    if options.influxdb_pvc_name is not None:
        if options.influxdb_pvc_name:
            options.influxdb.pvc_name = options.influxdb_pvc_name
        options.influxdb_pvc_name = None
        changed = True
    return changed


MIGRATIONS: Tuple[Callable[[Plan], bool], ...] = (
    migrate_package_manager_feature,
    migrate_allow_package_installation,
    migrate_dashboard,
    migrate_registry_address,
    migrate_direct_lvm,
    migrate_networking_type,
    migrate_heapster_options,
)


def migrate(plan: Plan) -> Plan:
    """Return a copy of ``plan`` with every deprecated field migrated."""
    migrated = plan.model_copy(deep=True)
    for rule in MIGRATIONS:
        if rule(migrated):
            logger.info(f"Migrated deprecated plan fields ({rule.__name__})")
    return migrated

"""Admission checks run before a node is added to the plan."""
import logging

from ..errors import DuplicateNodeError
from .plan import Node, Plan

logger = logging.getLogger("ketctl.admission")

# pools a node can be added to after installation
ADMISSION_POOLS = ("worker", "ingress", "storage")


def ensure_node_is_new(plan: Plan, candidate: Node) -> None:
    """Fail if the plan already holds a node with the candidate's identity.

    Host and IP must be unique across the worker, ingress and storage pools;
    the internal IP only when the candidate has one.

    Raises:
        DuplicateNodeError: On the first collision found
    """
    for pool in ADMISSION_POOLS:
        for node in plan.pool(pool).nodes:
            if node.host == candidate.host:
                raise DuplicateNodeError("host", pool)
            if node.ip == candidate.ip:
                raise DuplicateNodeError("ip", pool)
            if candidate.internal_ip and node.internal_ip == candidate.internal_ip:
                raise DuplicateNodeError("internalip", pool)
    logger.debug(f"Node {candidate.host} ({candidate.ip}) is not in the plan yet")

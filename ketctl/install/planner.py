"""Persistence of installation plans."""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from pydantic import ValidationError as PydanticValidationError

from ..errors import MissingPlanError, ParseError, PlanWriteError
from ..utils import redact_sensitive_data
from .defaults import PlanTemplateOptions, build_from_template
from .locator import DEFAULT_GENERATED_DIR, cluster_paths
from .plan import Plan
from .serializer import dump_plan, read_plan

logger = logging.getLogger("ketctl.planner")


class Planner(ABC):
    """Reads, writes and locates an installation plan."""

    @abstractmethod
    def read(self) -> Plan:
        pass

    @abstractmethod
    def write(self, plan: Plan) -> None:
        pass

    @abstractmethod
    def exists(self) -> bool:
        pass


class FilePlanner(Planner):
    """Plan stored as an annotated YAML file."""

    def __init__(self, plan_file: Union[str, Path], generated_dir: Union[str, Path] = DEFAULT_GENERATED_DIR):
        self.plan_file = Path(plan_file)
        self.generated_dir = Path(generated_dir)

    @classmethod
    def for_cluster(cls, name: str) -> "FilePlanner":
        paths = cluster_paths(name)
        return cls(paths.plan_file, paths.generated_dir)

    def read(self) -> Plan:
        """Read, migrate and default the plan file.

        Raises:
            MissingPlanError: If the plan file does not exist
            ParseError: If the file is not a valid plan
        """
        if not self.exists():
            raise MissingPlanError(str(self.plan_file))
        try:
            data = self.plan_file.read_bytes()
        except OSError as e:
            raise ParseError(f"could not read file {self.plan_file}: {e}") from e
        plan = read_plan(data)
        logger.debug(f"Read plan from {self.plan_file}: {redact_sensitive_data(plan.to_document())}")
        return plan

    def write(self, plan: Plan) -> None:
        """Write the plan file, creating its directory if needed.

        The YAML is rendered before the file is opened, so a marshalling error
        leaves an existing file untouched.
        """
        text = dump_plan(plan)
        try:
            self.plan_file.parent.mkdir(parents=True, exist_ok=True)
            self.plan_file.write_text(text, encoding="utf-8")
        except OSError as e:
            raise PlanWriteError(f"error writing plan file {self.plan_file}: {e}") from e
        logger.info(f"📝 Wrote plan file {self.plan_file}")

    def exists(self) -> bool:
        return self.plan_file.exists()

    def __repr__(self) -> str:
        return f"FilePlanner(plan_file={str(self.plan_file)!r}, generated_dir={str(self.generated_dir)!r})"


class BytesPlanner(Planner):
    """Plan held in memory as JSON, for tests and non-interactive flows."""

    def __init__(self, data: bytes = b""):
        self.data = data

    def read(self) -> Plan:
        try:
            return Plan.model_validate(json.loads(self.data))
        except (ValueError, PydanticValidationError) as e:
            raise ParseError(f"could not unmarshal plan: {e}") from e

    def write(self, plan: Plan) -> None:
        self.data = plan.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    def exists(self) -> bool:
        return bool(self.data)


def write_plan_template(opts: PlanTemplateOptions, planner: Planner) -> Plan:
    """Build a plan template from ``opts`` and store it with ``planner``."""
    plan = build_from_template(opts)
    planner.write(plan)
    return plan

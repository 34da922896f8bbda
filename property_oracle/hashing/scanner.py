"""
Property directory scanner.

Finds the data group root files of one property (JSON objects with
exactly the keys "label" and "relationships") and maps each label to its
schema CID through the schema manifest.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from property_oracle.core.errors import PropertyIdentityError, StructuralError, UndeclaredSchemaError
from property_oracle.core.schema import SEED_LABEL, SchemaManifest
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class DataGroupFile:
    """A data group root document and the schema it declares."""

    path: Path
    label: str
    data_group_cid: str

    @property
    def is_seed(self) -> bool:
        return self.label == SEED_LABEL


@dataclass
class PropertyFileSet:
    """
    Data group root files of one property.

    Attributes:
        property_dir: Directory holding the property's documents
        data_groups: Root files in file name order (seed included)
        undeclared: Root files whose label is not in the schema manifest
        unreadable: Top-level JSON files that could not be read or parsed
    """

    property_dir: Path
    data_groups: list[DataGroupFile] = field(default_factory=list)
    undeclared: list[UndeclaredSchemaError] = field(default_factory=list)
    unreadable: list[StructuralError] = field(default_factory=list)

    @property
    def seed(self) -> DataGroupFile | None:
        return next((group for group in self.data_groups if group.is_seed), None)


class PropertyScanner:
    """
    Classifies the top-level JSON files of a property directory.
    """

    def __init__(self, schema_manifest: SchemaManifest):
        self.schema_manifest = schema_manifest

    def scan(self, property_dir: str | Path) -> PropertyFileSet:
        """
        Scan one property directory.

        Args:
            property_dir: Directory of the property

        Returns:
            PropertyFileSet with the data group root files

        Raises:
            PropertyIdentityError: If the directory holds more than one seed
        """
        property_dir = Path(property_dir)
        file_set = PropertyFileSet(property_dir=property_dir)

        for path in sorted(property_dir.glob("*.json")):
            try:
                with open(path, encoding="utf-8") as f:
                    document = json.load(f)
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.error(f"Unreadable file {path.name}: {e}")
                file_set.unreadable.append(StructuralError(f"Invalid JSON document: {e}", path=str(path)))
                continue

            if not SchemaManifest.is_data_group_root(document):
                continue

            label = document["label"]
            data_group_cid = self.schema_manifest.data_group_cid(label)
            if data_group_cid is None:
                file_set.undeclared.append(UndeclaredSchemaError(label, path=str(path)))
                continue
            file_set.data_groups.append(DataGroupFile(path=path, label=label, data_group_cid=data_group_cid))

        seeds = [group for group in file_set.data_groups if group.is_seed]
        if len(seeds) > 1:
            names = ", ".join(group.path.name for group in seeds)
            raise PropertyIdentityError(f"Multiple seed data groups found: {names}", path=str(property_dir))

        logger.debug(
            f"Scanned {property_dir.name}: {len(file_set.data_groups)} data groups, "
            f"{len(file_set.undeclared)} undeclared, {len(file_set.unreadable)} unreadable"
        )
        return file_set

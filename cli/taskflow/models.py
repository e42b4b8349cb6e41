"""
Data models for Taskflow

TaskflowSettings is the persisted plugin configuration. It is stored under
the camelCase keys used by the Obsidian plugin's data.json, so an existing
data.json can be read as-is.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .paths import build_path, normalize_folder, parent_path


class TaskflowSettings(BaseModel):
    """Plugin settings (the recognised options of the settings surface)"""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True, extra="ignore")

    root_folder: str = Field(default="taskflow", alias="rootFolder")
    template_path: str = Field(default="", alias="templatePath")
    property_name: str = Field(default="✅", alias="propertyName")
    true_folder: str = Field(
        default="archive",
        alias="trueFolder",
        validation_alias=AliasChoices("trueFolder", "trueContainer", "true_folder"),
    )
    false_folder: str = Field(
        default="",
        alias="falseFolder",
        validation_alias=AliasChoices("falseFolder", "falseContainer", "false_folder"),
    )
    icebox_folder: str = Field(default="icebox", alias="iceboxFolder")
    enable_backlog: bool = Field(default=False, alias="enableBacklog")
    backlog_folder: str = Field(default="backlog", alias="backlogFolder")
    enable_completed_date: bool = Field(default=False, alias="enableCompletedDate")
    completed_date_property_name: str = Field(default="completed_date", alias="completedDatePropertyName")
    task_counter: int = Field(default=1, ge=1, alias="taskCounter")

    @field_validator("root_folder", "true_folder", "false_folder", "icebox_folder", "backlog_folder")
    @classmethod
    def strip_folder(cls, v: str) -> str:
        return normalize_folder(v)

    @field_validator("template_path", "property_name", "completed_date_property_name")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    # Resolved folders (relative settings joined onto the root folder)

    @property
    def absolute_true_folder(self) -> str:
        return build_path(self.root_folder, self.true_folder)

    @property
    def absolute_false_folder(self) -> str:
        return build_path(self.root_folder, self.false_folder)

    @property
    def absolute_icebox_folder(self) -> str:
        return build_path(self.root_folder, self.icebox_folder)

    @property
    def absolute_backlog_folder(self) -> str:
        return build_path(self.root_folder, self.backlog_folder)

    def parked_folders(self) -> List[str]:
        """Folders where an unchecked note stays instead of going to the false folder"""
        folders = []
        if self.icebox_folder:
            folders.append(self.absolute_icebox_folder)
        if self.enable_backlog and self.backlog_folder:
            folders.append(self.absolute_backlog_folder)
        return [f for f in folders if f != self.absolute_true_folder]

    def missing_required(self) -> List[str]:
        """Names of required settings that are empty after resolution"""
        missing = []
        if not self.property_name:
            missing.append("propertyName")
        if not self.absolute_true_folder:
            missing.append("trueFolder")
        if not self.absolute_false_folder:
            missing.append("falseFolder")
        return missing

    def to_data(self) -> Dict[str, Any]:
        """Serialise to the data.json representation"""
        return self.model_dump(by_alias=True)

    @classmethod
    def option_keys(cls) -> List[str]:
        return [field.alias for field in cls.model_fields.values()]

    @classmethod
    def field_for_option(cls, key: str) -> Optional[str]:
        """Map a camelCase option (or snake_case field name) to the field name"""
        for name, field in cls.model_fields.items():
            choices = {name, field.alias}
            if isinstance(field.validation_alias, AliasChoices):
                choices.update(c for c in field.validation_alias.choices if isinstance(c, str))
            if key in choices:
                return name
        return None


@dataclass(frozen=True)
class Note:
    """A Markdown note, identified by its vault-relative path"""
    path: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def parent(self) -> str:
        return parent_path(self.path)


@dataclass
class MoveResult:
    """Outcome of a reclassification that moved a note"""
    original_path: str
    new_path: str
    value: bool
    completed_date_set: bool = False
    completed_date_cleared: bool = False

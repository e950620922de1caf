from datetime import datetime, timezone
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    # Datas sem timezone vindas do Azure DevOps estão em UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ApiModel(BaseModel):
    """Base dos modelos expostos pela API (campos em camelCase no JSON)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DueDateStatus(str, Enum):
    """Situação da data de entrega de uma User Story"""
    NOT_INFORMED = "not_informed"
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    ON_TRACK = "on_track"


class Iteration(ApiModel):
    """Iteração (sprint) do time no Azure DevOps"""
    id: Optional[str] = None
    name: str
    path: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_current: bool = False

    @property
    def has_dates(self) -> bool:
        """Verifica se a iteração possui data de início e de fim"""
        return self.start_date is not None and self.end_date is not None

    def contains(self, moment: datetime) -> bool:
        """Verifica se o instante está no intervalo [início, fim) da iteração"""
        if not self.has_dates:
            return False
        return _as_utc(self.start_date) <= _as_utc(moment) < _as_utc(self.end_date)


class SprintWindow(ApiModel):
    """Janela de sprints exibida no seletor do painel"""
    sprints: List[Iteration] = Field(default_factory=list)
    current_index: Optional[int] = None

    @property
    def current(self) -> Optional[Iteration]:
        """Retorna a sprint atual da janela, se houver"""
        if self.current_index is None:
            return None
        return self.sprints[self.current_index]


class UserStory(ApiModel):
    """User Story de uma sprint"""
    id: int
    title: str
    type: str = "User Story"
    state: str = ""
    due_date: Optional[datetime] = None
    due_status: DueDateStatus = DueDateStatus.NOT_INFORMED


class Task(ApiModel):
    """Task vinculada a uma User Story"""
    id: int
    title: str
    state: str = ""
    description: str = ""
    assigned_to: str = ""


class Developer(ApiModel):
    """Capacity calculada de um desenvolvedor na sprint"""
    name: str
    tasks: int
    capacity_per_day: float
    days_off: int
    total_capacity: float


class SprintCapacitySummary(ApiModel):
    """Resumo de capacity da sprint"""
    developers: List[Developer] = Field(default_factory=list)
    sprint_start: Optional[datetime] = None
    sprint_end: Optional[datetime] = None
    working_days: int = 0
    total_days_off: int = 0
    total_capacity: float = 0.0

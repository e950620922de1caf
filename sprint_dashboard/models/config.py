import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..services.dates import normalize_date

DEFAULT_CAPACITY_PER_DAY = 8.0
DEFAULT_ACTIVITY = "Desenvolvimento"

REQUIRED_ENV_VARS = {
    "AZURE_DEVOPS_PAT": "token",
    "AZURE_DEVOPS_ORG": "organization",
    "AZURE_DEVOPS_PROJECT": "project",
    "AZURE_DEVOPS_TEAM": "team",
}


class SettingsError(ValueError):
    """Configuração de ambiente ausente ou inválida"""


class CapacityConfigError(ValueError):
    """Arquivo de capacity viola o contrato (ex.: ausência sem início e sem fim)"""


class AzureDevOpsConfig(BaseModel):
    """Configuração do Azure DevOps"""

    organization: str
    project: str
    team: str
    token: str

    @property
    def base_url(self) -> str:
        """URL da organização (aceita o nome ou a URL completa)"""
        if self.organization.startswith(("http://", "https://")):
            return self.organization.rstrip("/")
        return f"https://dev.azure.com/{self.organization}"


class Settings(BaseModel):
    """Configuração principal do sistema"""

    azure_devops: AzureDevOpsConfig
    capacity_source: Literal["default", "file", "azure"] = "default"
    capacity_file: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8088
    log_dir: str = "logs"

    @model_validator(mode="after")
    def validate_capacity_file(self) -> "Settings":
        """Exige o arquivo de capacity quando a origem é 'file'"""
        if self.capacity_source == "file" and not self.capacity_file:
            raise ValueError("CAPACITY_FILE é obrigatório quando CAPACITY_SOURCE=file")
        return self


def load_settings(env_file: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Carrega as configurações a partir das variáveis de ambiente

    Args:
        env_file: Arquivo .env opcional (por padrão, procura um .env no diretório atual)
        environ: Mapeamento de variáveis (por padrão, os.environ)

    Returns:
        Settings: Configurações validadas

    Raises:
        SettingsError: Se alguma variável obrigatória estiver ausente ou inválida
    """
    if environ is None:
        load_dotenv(env_file)
        environ = os.environ

    missing = [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
    if missing:
        raise SettingsError(
            f"Todas as variáveis de ambiente são obrigatórias: {', '.join(REQUIRED_ENV_VARS)} "
            f"(ausentes: {', '.join(missing)})"
        )

    data: Dict[str, Any] = {
        "azure_devops": {field: environ[name] for name, field in REQUIRED_ENV_VARS.items()},
    }
    optional = {
        "CAPACITY_SOURCE": "capacity_source",
        "CAPACITY_FILE": "capacity_file",
        "SERVER_HOST": "host",
        "SERVER_PORT": "port",
        "LOG_DIR": "log_dir",
    }
    for name, field in optional.items():
        if environ.get(name):
            data[field] = environ[name]

    try:
        return Settings(**data)
    except ValidationError as e:
        raise SettingsError(f"Configuração inválida: {e}") from e


class CapacityModel(BaseModel):
    """Base dos modelos de capacity (aceita camelCase, como o Azure DevOps)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Activity(CapacityModel):
    """Atividade de um membro do time com sua alocação diária em horas"""

    name: str = DEFAULT_ACTIVITY
    capacity_per_day: float = Field(..., ge=0)


class DayOff(CapacityModel):
    """Período de ausência, inclusivo nas duas pontas"""

    start: date
    end: date

    @model_validator(mode="before")
    @classmethod
    def fill_single_day(cls, data: Any) -> Any:
        """Ausência com apenas uma das pontas vale como um único dia"""
        if not isinstance(data, dict):
            return data
        start, end = data.get("start"), data.get("end")
        if not start and not end:
            raise ValueError("Ausência sem data de início e sem data de fim")
        data = dict(data)
        data["start"] = start or end
        data["end"] = end or start
        return data

    @field_validator("start", "end", mode="before")
    @classmethod
    def validate_date(cls, v: Any) -> Any:
        """Converte datetime e strings de data para date"""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str):
            return normalize_date(v).date()
        return v

    def covers(self, day: date) -> bool:
        """Verifica se o dia está dentro da ausência"""
        return self.start <= day <= self.end


class TeamMemberCapacity(CapacityModel):
    """Configuração de capacity de um desenvolvedor"""

    name: str
    activities: List[Activity] = Field(default_factory=list)
    days_off: List[DayOff] = Field(default_factory=list)

    @property
    def daily_capacity_hours(self) -> float:
        """Soma das alocações diárias de todas as atividades"""
        return sum(activity.capacity_per_day for activity in self.activities)


def default_capacity(name: str) -> TeamMemberCapacity:
    """Capacity padrão: uma atividade de 8 horas por dia, sem ausências"""
    return TeamMemberCapacity(
        name=name,
        activities=[Activity(name=DEFAULT_ACTIVITY, capacity_per_day=DEFAULT_CAPACITY_PER_DAY)],
        days_off=[],
    )


def load_capacity_config(data: Mapping[str, Any]) -> Dict[str, TeamMemberCapacity]:
    """
    Converte o conteúdo do arquivo de capacity em configurações por desenvolvedor

    Entradas malformadas de um desenvolvedor são substituídas pela capacity padrão;
    uma ausência sem início e sem fim invalida o arquivo inteiro.

    Args:
        data: Dicionário {nome do desenvolvedor: {"activities": [...], "daysOff": [...]}}

    Returns:
        Dict[str, TeamMemberCapacity]: Capacity por nome de exibição

    Raises:
        CapacityConfigError: Se alguma ausência não tiver início nem fim
    """
    capacities = {}
    for name, entry in data.items():
        if not entry:
            capacities[name] = default_capacity(name)
            continue
        days_off = entry.get("daysOff", entry.get("days_off", [])) if isinstance(entry, dict) else []
        for day_off in days_off or []:
            if isinstance(day_off, dict) and not day_off.get("start") and not day_off.get("end"):
                raise CapacityConfigError(f"Ausência de {name} sem data de início e sem data de fim")

        try:
            capacities[name] = TeamMemberCapacity.model_validate({**entry, "name": name})
        except (ValidationError, TypeError) as e:
            logger.warning(f"Capacity inválida para {name}, usando o padrão: {e}")
            capacities[name] = default_capacity(name)

    logger.info(f"Capacity carregada para {len(capacities)} desenvolvedores")
    return capacities

from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional
from loguru import logger

from ..models.config import TeamMemberCapacity, default_capacity
from ..models.entities import Developer, SprintCapacitySummary
from .working_days import count_working_days


def count_tasks_by_developer(assignees: Iterable[str]) -> Dict[str, int]:
    """
    Conta as tasks atribuídas a cada desenvolvedor

    Args:
        assignees: Nome de exibição do responsável de cada task

    Returns:
        Dict[str, int]: Quantidade de tasks por desenvolvedor
    """
    return dict(Counter(name for name in assignees if name))


def aggregate_capacity(
    sprint_start: Optional[datetime],
    sprint_end: Optional[datetime],
    task_counts: Mapping[str, int],
    capacities: Mapping[str, TeamMemberCapacity],
) -> SprintCapacitySummary:
    """
    Calcula a capacity de cada desenvolvedor e o total da sprint

    Apenas desenvolvedores com tasks na sprint entram no resultado. Quem não
    tem capacity configurada recebe a capacity padrão (8h/dia, sem ausências).

    Args:
        sprint_start: Início da sprint
        sprint_end: Fim da sprint
        task_counts: Quantidade de tasks por desenvolvedor
        capacities: Capacity configurada por desenvolvedor

    Returns:
        SprintCapacitySummary: Capacity por desenvolvedor e totais da sprint
    """
    developers = []
    for name, tasks in task_counts.items():
        if tasks <= 0:
            continue

        capacity = capacities.get(name)
        if capacity is None:
            logger.debug(f"Capacity não configurada para {name}, usando o padrão")
            capacity = default_capacity(name)

        capacity_per_day = capacity.daily_capacity_hours
        working_days = count_working_days(sprint_start, sprint_end, capacity.days_off)
        developers.append(Developer(
            name=name,
            tasks=tasks,
            capacity_per_day=capacity_per_day,
            # Quantidade de períodos de ausência declarados, não de dias
            days_off=len(capacity.days_off),
            total_capacity=working_days * capacity_per_day,
        ))

    developers.sort(key=lambda developer: developer.name)

    summary = SprintCapacitySummary(
        developers=developers,
        sprint_start=sprint_start,
        sprint_end=sprint_end,
        working_days=count_working_days(sprint_start, sprint_end),
        total_days_off=sum(developer.days_off for developer in developers),
        total_capacity=sum(developer.total_capacity for developer in developers),
    )
    logger.info(
        f"Capacity calculada para {len(developers)} desenvolvedores: "
        f"{summary.total_capacity:.1f}h em {summary.working_days} dias úteis"
    )
    return summary

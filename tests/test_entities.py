import pytest
from datetime import datetime, timedelta, timezone
from sprint_dashboard.models.entities import (
    Developer,
    DueDateStatus,
    Iteration,
    SprintCapacitySummary,
    SprintWindow,
    Task,
    UserStory,
)


@pytest.fixture
def timezone_br():
    """Fixture para timezone de Brasília (UTC-3)"""
    return timezone(timedelta(hours=-3))


@pytest.fixture
def iteration():
    """Fixture para uma sprint de duas semanas"""
    return Iteration(
        id="8c5f3a1e",
        name="Sprint 12",
        path="Projeto\\Sprint 12",
        start_date=datetime(2024, 6, 3, tzinfo=timezone.utc),
        end_date=datetime(2024, 6, 15, tzinfo=timezone.utc),
    )


def test_iteration_creation(iteration):
    """Testa a criação de uma iteração"""
    assert iteration.name == "Sprint 12"
    assert iteration.has_dates
    assert iteration.is_current is False


def test_iteration_without_dates():
    """Testa iteração sem datas"""
    iteration = Iteration(name="Backlog")

    assert not iteration.has_dates
    assert not iteration.contains(datetime(2024, 6, 5, tzinfo=timezone.utc))


def test_iteration_contains(iteration, timezone_br):
    """Testa o intervalo [início, fim) da iteração"""
    assert iteration.contains(datetime(2024, 6, 3, tzinfo=timezone.utc))
    assert iteration.contains(datetime(2024, 6, 14, 23, 59, tzinfo=timezone.utc))
    assert not iteration.contains(datetime(2024, 6, 15, tzinfo=timezone.utc))
    # 21h em Brasília já é dia 15 em UTC
    assert not iteration.contains(datetime(2024, 6, 14, 21, 0, tzinfo=timezone_br))


def test_iteration_json_aliases(iteration):
    """Testa os nomes dos campos no JSON da API"""
    data = iteration.model_dump(by_alias=True)

    assert set(data) == {"id", "name", "path", "startDate", "endDate", "isCurrent"}


def test_iteration_accepts_camel_case():
    """Testa a criação a partir de campos em camelCase"""
    iteration = Iteration.model_validate({
        "name": "Sprint 1",
        "startDate": "2024-06-03T00:00:00Z",
        "isCurrent": True,
    })

    assert iteration.start_date == datetime(2024, 6, 3, tzinfo=timezone.utc)
    assert iteration.is_current


def test_sprint_window_current(iteration):
    """Testa a sprint atual da janela"""
    window = SprintWindow(sprints=[iteration], current_index=0)

    assert window.current == iteration
    assert SprintWindow().current is None


def test_user_story_defaults():
    """Testa os valores padrão de uma User Story"""
    us = UserStory(id=101, title="Cadastro de clientes")

    assert us.type == "User Story"
    assert us.due_date is None
    assert us.due_status == DueDateStatus.NOT_INFORMED
    assert us.model_dump(by_alias=True, mode="json")["dueStatus"] == "not_informed"


def test_task_json_aliases():
    """Testa os nomes dos campos de uma Task no JSON"""
    task = Task(id=7, title="[BE] Endpoint", state="Active", assigned_to="Ana Souza")

    data = task.model_dump(by_alias=True)

    assert data["assignedTo"] == "Ana Souza"
    assert data["description"] == ""


def test_capacity_summary_json_aliases():
    """Testa os nomes dos campos do resumo de capacity no JSON"""
    summary = SprintCapacitySummary(
        developers=[Developer(name="Ana", tasks=2, capacity_per_day=8, days_off=1, total_capacity=64)],
        working_days=10,
        total_days_off=1,
        total_capacity=64,
    )

    data = summary.model_dump(by_alias=True)

    assert data["workingDays"] == 10
    assert data["totalDaysOff"] == 1
    assert data["totalCapacity"] == 64
    assert data["sprintStart"] is None
    assert data["developers"][0]["capacityPerDay"] == 8
    assert data["developers"][0]["daysOff"] == 1
    assert data["developers"][0]["totalCapacity"] == 64

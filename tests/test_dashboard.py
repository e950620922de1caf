import json
import pytest
from unittest.mock import Mock
from datetime import date, datetime, timezone
from sprint_dashboard.models.config import Activity, CapacityConfigError, DayOff, TeamMemberCapacity
from sprint_dashboard.models.entities import DueDateStatus, Iteration, UserStory
from sprint_dashboard.services.dashboard import DashboardService
from sprint_dashboard.services.sprints import SprintNotFound


@pytest.fixture
def now():
    """Instante de referência: quarta-feira, 05/06/2024"""
    return datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_client():
    """Fixture para mock do cliente Azure DevOps"""
    client = Mock()
    client.get_iterations.return_value = [
        Iteration(id="s1", name="Sprint 1",
                  start_date=datetime(2024, 5, 20, tzinfo=timezone.utc),
                  end_date=datetime(2024, 6, 1, tzinfo=timezone.utc)),
        Iteration(id="s2", name="Sprint 2",
                  start_date=datetime(2024, 6, 3, tzinfo=timezone.utc),
                  end_date=datetime(2024, 6, 14, tzinfo=timezone.utc)),
        Iteration(id="s3", name="Sprint 3"),
    ]
    client.get_iteration_work_item_ids.return_value = [1, 2, 3]
    client.get_user_stories.return_value = [
        UserStory(id=1, title="Cadastro", state="Active",
                  due_date=datetime(2024, 6, 4, tzinfo=timezone.utc)),
        UserStory(id=2, title="Relatório", state="New",
                  due_date=datetime(2024, 6, 10, tzinfo=timezone.utc)),
        UserStory(id=3, title="Exportação", state="Active"),
    ]
    client.get_task_assignees.return_value = ["Bruno Lima", "Ana Souza", "Ana Souza"]
    return client


@pytest.fixture
def service(mock_client, now):
    """Fixture para o serviço do painel"""
    return DashboardService(mock_client, clock=lambda: now)


def test_list_sprints(service):
    """Testa a janela de sprints com a sprint atual marcada"""
    window = service.list_sprints()

    assert [sprint.name for sprint in window.sprints] == ["Sprint 1", "Sprint 2", "Sprint 3"]
    assert window.current.name == "Sprint 2"


def test_get_user_stories(service, mock_client):
    """Testa as User Stories com a situação da data de entrega"""
    user_stories = service.get_user_stories("Sprint 2")

    mock_client.get_iteration_work_item_ids.assert_called_once_with("s2")
    assert [us.due_status for us in user_stories] == [
        DueDateStatus.OVERDUE,
        DueDateStatus.DUE_SOON,
        DueDateStatus.NOT_INFORMED,
    ]


def test_get_user_stories_filtered_by_state(service):
    """Testa o filtro de User Stories pelo estado"""
    user_stories = service.get_user_stories("Sprint 2", state="Active")

    assert [us.id for us in user_stories] == [1, 3]


def test_get_user_stories_unknown_sprint(service):
    """Testa sprint inexistente"""
    with pytest.raises(SprintNotFound):
        service.get_user_stories("Sprint 99")


def test_get_user_story_tasks(service, mock_client):
    """Testa que as Tasks vêm do cliente"""
    mock_client.get_user_story_tasks.return_value = []

    assert service.get_user_story_tasks(1) == []
    mock_client.get_user_story_tasks.assert_called_once_with(1)


def test_get_developers_default_capacity(service, mock_client):
    """Testa a capacity dos desenvolvedores com a capacity padrão"""
    summary = service.get_developers("Sprint 2")

    mock_client.get_task_assignees.assert_called_once_with([1, 2, 3])
    assert [developer.name for developer in summary.developers] == ["Ana Souza", "Bruno Lima"]
    assert summary.developers[0].tasks == 2
    assert summary.working_days == 10
    assert summary.total_capacity == 2 * 10 * 8
    mock_client.get_team_capacities.assert_not_called()


def test_get_developers_file_capacity(mock_client, now, tmp_path):
    """Testa a capacity carregada de arquivo"""
    capacity_file = tmp_path / "capacity.json"
    capacity_file.write_text(json.dumps({
        "Ana Souza": {
            "activities": [{"name": "Desenvolvimento", "capacityPerDay": 4}, {"name": "Suporte", "capacityPerDay": 4}],
            "daysOff": [{"start": "2024-06-10", "end": "2024-06-11"}],
        },
    }), encoding="utf-8")
    service = DashboardService(mock_client, "file", str(capacity_file), clock=lambda: now)

    summary, capacities = service.get_capacity_details("Sprint 2")

    ana, bruno = summary.developers
    assert ana.total_capacity == 64
    assert ana.days_off == 1
    assert bruno.total_capacity == 80
    assert summary.total_days_off == 1
    assert "Ana Souza" in capacities


def test_get_developers_azure_capacity(mock_client, now):
    """Testa a capacity obtida do Azure DevOps"""
    mock_client.get_team_capacities.return_value = {
        "Bruno Lima": TeamMemberCapacity(
            name="Bruno Lima",
            activities=[Activity(capacity_per_day=6)],
            days_off=[DayOff(start=date(2024, 6, 3), end=date(2024, 6, 3))],
        ),
    }
    service = DashboardService(mock_client, "azure", clock=lambda: now)

    summary = service.get_developers("Sprint 2")

    mock_client.get_team_capacities.assert_called_once_with("s2")
    bruno = summary.developers[1]
    assert bruno.capacity_per_day == 6
    assert bruno.total_capacity == 9 * 6


def test_get_developers_sprint_without_dates(service):
    """Testa sprint sem datas: capacity zero, sem erro"""
    summary = service.get_developers("Sprint 3")

    assert summary.working_days == 0
    assert summary.total_capacity == 0
    assert len(summary.developers) == 2


def test_get_developers_missing_capacity_file(mock_client, now, tmp_path):
    """Testa arquivo de capacity inexistente"""
    service = DashboardService(mock_client, "file", str(tmp_path / "nao_existe.json"), clock=lambda: now)

    with pytest.raises(CapacityConfigError, match="não encontrado"):
        service.get_developers("Sprint 2")


@pytest.mark.parametrize("content", ["{ nao e json", "[1, 2]"])
def test_get_developers_invalid_capacity_file(mock_client, now, tmp_path, content):
    """Testa arquivo de capacity que não é um objeto JSON válido"""
    capacity_file = tmp_path / "capacity.json"
    capacity_file.write_text(content, encoding="utf-8")
    service = DashboardService(mock_client, "file", str(capacity_file), clock=lambda: now)

    with pytest.raises(CapacityConfigError):
        service.get_developers("Sprint 2")

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
from loguru import logger

from ..azure.client import AzureDevOpsClient
from ..models.config import CapacityConfigError, Settings, TeamMemberCapacity, load_capacity_config
from ..models.entities import Iteration, SprintCapacitySummary, SprintWindow, Task, UserStory
from .capacity import aggregate_capacity, count_tasks_by_developer
from .dates import classify_due_date
from .sprints import find_iteration, select_window


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DashboardService:
    """Serviço que monta as visões do painel a cada requisição"""

    def __init__(
        self,
        client: AzureDevOpsClient,
        capacity_source: str = "default",
        capacity_file: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Inicializa o serviço do painel

        Args:
            client: Cliente do Azure DevOps
            capacity_source: Origem da capacity ("default", "file" ou "azure")
            capacity_file: Arquivo JSON de capacity (quando a origem é "file")
            clock: Função que retorna o instante atual
        """
        self.client = client
        self.capacity_source = capacity_source
        self.capacity_file = capacity_file
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, client: AzureDevOpsClient) -> "DashboardService":
        return cls(client, settings.capacity_source, settings.capacity_file)

    def _find_sprint(self, sprint_name: str) -> Iteration:
        return find_iteration(self.client.get_iterations(), sprint_name)

    def list_sprints(self) -> SprintWindow:
        """Retorna a janela de sprints em torno da sprint atual"""
        return select_window(self.client.get_iterations(), self.clock())

    def get_user_stories(self, sprint_name: str, state: Optional[str] = None) -> List[UserStory]:
        """
        Obtém as User Stories de uma sprint com a situação da data de entrega

        Args:
            sprint_name: Nome da sprint
            state: Filtra pelo estado da User Story (ex.: Active)

        Returns:
            List[UserStory]: User Stories da sprint

        Raises:
            SprintNotFound: Se a sprint não existir
        """
        sprint = self._find_sprint(sprint_name)
        work_item_ids = self.client.get_iteration_work_item_ids(sprint.id)
        today = self.clock().date()

        user_stories = []
        for us in self.client.get_user_stories(work_item_ids):
            if state and us.state != state:
                continue
            user_stories.append(us.model_copy(update={"due_status": classify_due_date(us.due_date, today)}))
        return user_stories

    def get_user_story_tasks(self, user_story_id: int) -> List[Task]:
        """Obtém as Tasks de uma User Story"""
        return self.client.get_user_story_tasks(user_story_id)

    def get_developers(self, sprint_name: str) -> SprintCapacitySummary:
        """
        Calcula a capacity dos desenvolvedores com tasks na sprint

        Args:
            sprint_name: Nome da sprint

        Returns:
            SprintCapacitySummary: Capacity por desenvolvedor e totais da sprint

        Raises:
            SprintNotFound: Se a sprint não existir
            CapacityConfigError: Se o arquivo de capacity for inválido
        """
        summary, _ = self.get_capacity_details(sprint_name)
        return summary

    def get_capacity_details(self, sprint_name: str) -> Tuple[SprintCapacitySummary, Dict[str, TeamMemberCapacity]]:
        """Calcula a capacity da sprint e retorna também a capacity configurada usada no cálculo"""
        sprint = self._find_sprint(sprint_name)
        work_item_ids = self.client.get_iteration_work_item_ids(sprint.id)
        user_story_ids = [us.id for us in self.client.get_user_stories(work_item_ids)]
        task_counts = count_tasks_by_developer(self.client.get_task_assignees(user_story_ids))
        capacities = self._load_capacities(sprint)

        summary = aggregate_capacity(sprint.start_date, sprint.end_date, task_counts, capacities)
        return summary, capacities

    def _load_capacities(self, sprint: Iteration) -> Dict[str, TeamMemberCapacity]:
        """Carrega a capacity configurada conforme a origem definida"""
        if self.capacity_source == "file" and self.capacity_file:
            path = Path(self.capacity_file)
            logger.info(f"Carregando capacity do arquivo {path}")
            try:
                data = json.loads(path.read_text(encoding='utf-8'))
            except FileNotFoundError as e:
                raise CapacityConfigError(f"Arquivo de capacity não encontrado: {path}") from e
            except json.JSONDecodeError as e:
                raise CapacityConfigError(f"Arquivo de capacity com JSON inválido ({path}): {e}") from e
            if not isinstance(data, dict):
                raise CapacityConfigError(f"Arquivo de capacity deve conter um objeto JSON: {path}")
            return load_capacity_config(data)
        if self.capacity_source == "azure" and sprint.id:
            return self.client.get_team_capacities(sprint.id)
        return {}

from typing import Any, Dict, List, Optional
from azure.devops.connection import Connection
from azure.devops.v7_1.work.models import TeamContext
from azure.devops.v7_1.work_item_tracking.models import Wiql
from msrest.authentication import BasicAuthentication
from loguru import logger

from ..models.config import Activity, AzureDevOpsConfig, DayOff, TeamMemberCapacity
from ..models.entities import Iteration, Task, UserStory
from ..services.dates import DUE_DATE_FIELDS, extract_due_date

# Limite de IDs por chamada de get_work_items no Azure DevOps
WORK_ITEMS_BATCH_SIZE = 200

USER_STORY_TYPE = "User Story"

# Microsoft.VSTS.Common.DueDate não é solicitado: nem todo processo define o campo
USER_STORY_FIELDS = [
    "System.Title",
    "System.WorkItemType",
    "System.State",
    "Microsoft.VSTS.Scheduling.DueDate",
    "Microsoft.VSTS.Scheduling.TargetDate",
    "System.BoardColumn",
]

TASK_FIELDS = ["System.Title", "System.State", "System.Description", "System.AssignedTo"]


def field_value(fields: Optional[Dict[str, Any]], name: str) -> str:
    """
    Obtém o valor de um campo de work item como string

    Campos de identidade (ex.: System.AssignedTo) retornam o displayName
    ou, na falta dele, o value.

    Args:
        fields: Campos do work item
        name: Nome de referência do campo

    Returns:
        str: Valor do campo ou string vazia se ausente
    """
    if not fields or fields.get(name) is None:
        return ""

    value = fields[name]
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if isinstance(value.get("displayName"), str):
            return value["displayName"]
        if isinstance(value.get("value"), str):
            return value["value"]
    return str(value)


class AzureDevOpsClient:
    """Cliente para integração com o Azure DevOps"""

    def __init__(self, config: AzureDevOpsConfig, connection: Optional[Connection] = None):
        """
        Inicializa o cliente do Azure DevOps

        Args:
            config: Organização, projeto, time e token de acesso pessoal (PAT)
            connection: Conexão já criada (por padrão, autentica com o PAT)
        """
        self.project = config.project
        self.team = config.team
        if connection is None:
            credentials = BasicAuthentication('', config.token)
            connection = Connection(base_url=config.base_url, creds=credentials)
        self.connection = connection
        self.work_client = self.connection.clients.get_work_client()
        self.wit_client = self.connection.clients.get_work_item_tracking_client()
        self.team_context = TeamContext(project=self.project, team=self.team)

        logger.info(f"Cliente Azure DevOps inicializado para {config.base_url}/{self.project} (time {self.team})")

    def get_iterations(self) -> List[Iteration]:
        """
        Obtém as iterações do time na ordem retornada pelo Azure DevOps

        Returns:
            List[Iteration]: Iterações com datas de início e fim, quando definidas
        """
        results = self.work_client.get_team_iterations(self.team_context) or []
        iterations = []
        for item in results:
            if not item.name:
                logger.debug(f"Iteração {item.id} sem nome, ignorando")
                continue
            attributes = item.attributes
            iterations.append(Iteration(
                id=str(item.id) if item.id else None,
                name=item.name,
                path=item.path,
                start_date=attributes.start_date if attributes else None,
                end_date=attributes.finish_date if attributes else None,
            ))
        logger.info(f"Obtidas {len(iterations)} iterações do time {self.team}")
        return iterations

    def get_iteration_work_item_ids(self, iteration_id: str) -> List[int]:
        """Obtém os IDs dos work items vinculados a uma iteração"""
        response = self.work_client.get_iteration_work_items(self.team_context, iteration_id)
        ids = []
        if response and response.work_item_relations:
            for relation in response.work_item_relations:
                if relation.target and relation.target.id:
                    ids.append(relation.target.id)
        logger.info(f"Obtidos {len(ids)} work items da iteração {iteration_id}")
        return ids

    def _get_work_items(self, ids: List[int], fields: List[str]) -> list:
        """Busca work items em lotes, respeitando o limite do Azure DevOps"""
        items = []
        for offset in range(0, len(ids), WORK_ITEMS_BATCH_SIZE):
            batch = ids[offset:offset + WORK_ITEMS_BATCH_SIZE]
            items.extend(self.wit_client.get_work_items(batch, project=self.project, fields=fields) or [])
        return items

    def _query_ids(self, query: str) -> List[int]:
        """Executa uma consulta WIQL e retorna os IDs encontrados"""
        result = self.wit_client.query_by_wiql(Wiql(query=query), team_context=self.team_context)
        if not result or not result.work_items:
            return []
        return [item.id for item in result.work_items if item.id]

    def get_user_stories(self, work_item_ids: List[int]) -> List[UserStory]:
        """
        Obtém as User Stories entre os work items informados

        Args:
            work_item_ids: IDs dos work items da sprint

        Returns:
            List[UserStory]: User Stories com data de entrega, quando disponível
        """
        if not work_item_ids:
            return []

        logger.info(f"Buscando detalhes para {len(work_item_ids)} work items")
        user_stories = []
        for item in self._get_work_items(work_item_ids, USER_STORY_FIELDS):
            work_item_type = field_value(item.fields, "System.WorkItemType")
            if work_item_type != USER_STORY_TYPE:
                continue

            logger.debug(f"Processando User Story #{item.id}")
            fields = {name: field_value(item.fields, name) for name in DUE_DATE_FIELDS}
            user_stories.append(UserStory(
                id=item.id,
                title=field_value(item.fields, "System.Title"),
                type=work_item_type,
                state=field_value(item.fields, "System.State"),
                due_date=extract_due_date(fields, item.id),
            ))
        logger.info(f"Obtidas {len(user_stories)} User Stories")
        return user_stories

    def get_user_story_tasks(self, user_story_id: int) -> List[Task]:
        """
        Obtém as Tasks vinculadas a uma User Story

        Args:
            user_story_id: ID da User Story

        Returns:
            List[Task]: Tasks filhas da User Story
        """
        query = f"""
        SELECT [System.Id], [System.Title], [System.State], [System.Description], [System.AssignedTo]
        FROM WorkItems
        WHERE [System.WorkItemType] = 'Task'
        AND [System.Parent] = {int(user_story_id)}
        """
        task_ids = self._query_ids(query)
        if not task_ids:
            logger.info(f"Nenhuma Task encontrada para a User Story {user_story_id}")
            return []

        tasks = [
            Task(
                id=item.id,
                title=field_value(item.fields, "System.Title"),
                state=field_value(item.fields, "System.State"),
                description=field_value(item.fields, "System.Description"),
                assigned_to=field_value(item.fields, "System.AssignedTo"),
            )
            for item in self._get_work_items(task_ids, TASK_FIELDS)
        ]
        logger.info(f"Obtidas {len(tasks)} Tasks da User Story {user_story_id}")
        return tasks

    def get_task_assignees(self, user_story_ids: List[int]) -> List[str]:
        """
        Obtém o responsável de cada Task atribuída das User Stories informadas

        Args:
            user_story_ids: IDs das User Stories da sprint

        Returns:
            List[str]: Nome de exibição do responsável, um por Task
        """
        if not user_story_ids:
            return []

        query = f"""
        SELECT [System.Id], [System.AssignedTo]
        FROM WorkItems
        WHERE [System.WorkItemType] = 'Task'
        AND [System.Parent] IN ({','.join(map(str, user_story_ids))})
        AND [System.AssignedTo] <> ''
        """
        task_ids = self._query_ids(query)
        if not task_ids:
            logger.warning("Nenhuma Task atribuída encontrada nas User Stories da sprint")
            return []

        assignees = [
            field_value(item.fields, "System.AssignedTo")
            for item in self._get_work_items(task_ids, ["System.AssignedTo"])
        ]
        return [name for name in assignees if name]

    def get_team_capacities(self, iteration_id: str) -> Dict[str, TeamMemberCapacity]:
        """
        Obtém a capacity configurada no Azure DevOps para cada membro do time

        Args:
            iteration_id: ID da iteração

        Returns:
            Dict[str, TeamMemberCapacity]: Capacity por nome de exibição
        """
        result = self.work_client.get_capacities_with_identity_ref_and_totals(self.team_context, iteration_id)
        capacities = {}
        for member in (result.team_members if result else None) or []:
            if not member.team_member or not member.team_member.display_name:
                continue
            name = member.team_member.display_name
            capacities[name] = TeamMemberCapacity(
                name=name,
                activities=[
                    Activity(name=activity.name or "", capacity_per_day=activity.capacity_per_day or 0)
                    for activity in member.activities or []
                ],
                days_off=[
                    DayOff(start=day_off.start, end=day_off.end)
                    for day_off in member.days_off or []
                ],
            )
        logger.info(f"Capacity do Azure DevOps obtida para {len(capacities)} membros do time")
        return capacities

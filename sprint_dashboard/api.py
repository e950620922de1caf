"""
API HTTP do Painel de Sprints

Expõe as sprints, User Stories, Tasks e a capacity dos desenvolvedores
para o painel web.
"""

from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from . import __version__
from .azure.client import AzureDevOpsClient
from .models.config import CapacityConfigError, Settings, SettingsError, load_settings
from .models.entities import Iteration, SprintCapacitySummary, Task, UserStory
from .services.dashboard import DashboardService
from .services.sprints import SprintNotFound


class ApiError(Exception):
    """Erro retornado ao painel como {"error": mensagem}"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_service(request: Request) -> DashboardService:
    """Cria o serviço do painel para a requisição"""
    state = request.app.state
    if state.settings is None:
        state.settings = load_settings()
    if state.client is None:
        state.client = AzureDevOpsClient(state.settings.azure_devops)
    return DashboardService.from_settings(state.settings, state.client)


def require_sprint(sprint: Optional[str]) -> str:
    if not sprint:
        raise ApiError("Parâmetro 'sprint' é obrigatório", 400)
    return sprint


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Cria a aplicação FastAPI

    Args:
        settings: Configurações (por padrão, carregadas do ambiente na primeira requisição)
    """
    app = FastAPI(
        title="Painel de Sprints",
        description="Sprints, User Stories e capacity do time no Azure DevOps",
        version=__version__,
    )
    app.state.settings = settings
    app.state.client = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(SprintNotFound)
    async def sprint_not_found_handler(request: Request, exc: SprintNotFound):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(CapacityConfigError)
    async def capacity_config_handler(request: Request, exc: CapacityConfigError):
        logger.error(f"Arquivo de capacity inválido: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(SettingsError)
    async def settings_error_handler(request: Request, exc: SettingsError):
        logger.error(f"Configuração inválida: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Erro ao processar {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": f"Erro ao consultar o Azure DevOps: {exc}"})

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    @app.get("/sprints", response_model=List[Iteration])
    def list_sprints(service: DashboardService = Depends(get_service)):
        """Sprints exibidas no seletor (três antes e três depois da atual)"""
        return service.list_sprints().sprints

    @app.get("/user-stories", response_model=List[UserStory])
    def list_user_stories(
        sprint: Optional[str] = None,
        state: Optional[str] = None,
        service: DashboardService = Depends(get_service),
    ):
        """User Stories da sprint, opcionalmente filtradas pelo estado"""
        return service.get_user_stories(require_sprint(sprint), state)

    @app.get("/user-story-tasks/{user_story_id}", response_model=List[Task])
    def list_user_story_tasks(user_story_id: str, service: DashboardService = Depends(get_service)):
        """Tasks vinculadas a uma User Story"""
        try:
            story_id = int(user_story_id)
        except ValueError:
            raise ApiError("ID da User Story inválido", 400)
        return service.get_user_story_tasks(story_id)

    @app.get("/developers", response_model=SprintCapacitySummary)
    def get_developers(sprint: Optional[str] = None, service: DashboardService = Depends(get_service)):
        """Capacity dos desenvolvedores com tasks na sprint"""
        return service.get_developers(require_sprint(sprint))

    return app

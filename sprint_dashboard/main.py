from pathlib import Path
from typing import Optional
import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.table import Table

from .models.config import Settings, SettingsError, load_settings
from .models.entities import DueDateStatus
from .azure.client import AzureDevOpsClient
from .services.dashboard import DashboardService
from .services.report import CapacityReportGenerator
from .services.sprints import SprintNotFound
from .api import create_app

app = typer.Typer(help="Painel de Sprint - Azure DevOps")
console = Console()

DUE_STATUS_STYLES = {
    DueDateStatus.NOT_INFORMED: ("Não informado", "dark_orange"),
    DueDateStatus.OVERDUE: ("Atrasada", "red"),
    DueDateStatus.DUE_SOON: ("Próxima", "yellow"),
    DueDateStatus.ON_TRACK: ("No prazo", "cyan"),
}


def configurar_logger(output_dir: Path = Path("logs")):
    """Configura o sistema de logs"""
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()  # Remove handlers padrão
    logger.add(
        output_dir / "painel_{time}.log",
        rotation="1 day",
        retention="7 days",
        level="DEBUG",
        encoding='utf-8'
    )
    logger.add(lambda msg: console.print(msg, style="blue", end=""), level="INFO")


def carregar_configuracao() -> Settings:
    """Carrega as configurações do ambiente e inicializa os logs"""
    try:
        settings = load_settings()
    except SettingsError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    configurar_logger(Path(settings.log_dir))
    return settings


def criar_servico(settings: Settings) -> DashboardService:
    """Cria o serviço do painel conectado ao Azure DevOps"""
    logger.info("Conectando ao Azure DevOps...")
    client = AzureDevOpsClient(settings.azure_devops)
    return DashboardService.from_settings(settings, client)


@app.command()
def sprints():
    """Lista as sprints em torno da sprint atual"""
    service = criar_servico(carregar_configuracao())
    try:
        window = service.list_sprints()
    except Exception as e:
        logger.error(f"Erro ao buscar sprints: {str(e)}")
        raise typer.Exit(1)

    table = Table(title="Sprints")
    table.add_column("Sprint")
    table.add_column("Início")
    table.add_column("Fim")
    for sprint in window.sprints:
        start = sprint.start_date.strftime('%d/%m/%Y') if sprint.start_date else '-'
        end = sprint.end_date.strftime('%d/%m/%Y') if sprint.end_date else '-'
        name = f"{sprint.name} (Sprint Atual)" if sprint.is_current else sprint.name
        table.add_row(name, start, end, style="bold green" if sprint.is_current else None)
    console.print(table)


@app.command()
def historias(
    sprint: str = typer.Option(..., help="Nome da sprint"),
    estado: Optional[str] = typer.Option(None, help="Filtra pelo estado (ex.: Active)"),
):
    """Lista as User Stories de uma sprint"""
    service = criar_servico(carregar_configuracao())
    try:
        user_stories = service.get_user_stories(sprint, estado)
    except SprintNotFound as e:
        logger.error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        logger.error(f"Erro ao buscar User Stories: {str(e)}")
        raise typer.Exit(1)

    if not user_stories:
        console.print("Nenhuma história encontrada.")
        return

    table = Table(title=f"User Stories - {sprint}")
    table.add_column("ID", justify="right")
    table.add_column("Título")
    table.add_column("Estado")
    table.add_column("Entrega")
    for us in user_stories:
        label, style = DUE_STATUS_STYLES[us.due_status]
        due = f"{us.due_date.strftime('%d/%m/%Y')} ({label})" if us.due_date else label
        table.add_row(str(us.id), us.title, us.state, f"[{style}]{due}[/{style}]")
    console.print(table)


@app.command()
def tarefas(user_story_id: int = typer.Argument(..., help="ID da User Story")):
    """Lista as Tasks de uma User Story"""
    service = criar_servico(carregar_configuracao())
    try:
        tasks = service.get_user_story_tasks(user_story_id)
    except Exception as e:
        logger.error(f"Erro ao buscar tasks: {str(e)}")
        raise typer.Exit(1)

    table = Table(title=f"Tasks da User Story #{user_story_id}")
    table.add_column("ID", justify="right")
    table.add_column("Título")
    table.add_column("Estado")
    table.add_column("Responsável")
    for task in tasks:
        table.add_row(str(task.id), task.title, task.state, task.assigned_to or '-')
    console.print(table)


@app.command()
def desenvolvedores(sprint: str = typer.Option(..., help="Nome da sprint")):
    """Mostra a capacity dos desenvolvedores de uma sprint"""
    service = criar_servico(carregar_configuracao())
    try:
        summary = service.get_developers(sprint)
    except SprintNotFound as e:
        logger.error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        logger.error(f"Erro ao calcular capacity: {str(e)}")
        raise typer.Exit(1)

    table = Table(title=f"Capacity - {sprint} ({summary.working_days} dias úteis)")
    table.add_column("Desenvolvedor")
    table.add_column("Tasks", justify="right")
    table.add_column("Capacity/Dia", justify="right")
    table.add_column("Ausências", justify="right")
    table.add_column("Capacity Total", justify="right")
    for developer in summary.developers:
        table.add_row(
            developer.name,
            str(developer.tasks),
            f"{developer.capacity_per_day:.1f}h",
            str(developer.days_off),
            f"{developer.total_capacity:.1f}h",
        )
    table.add_row("Total", "", "", str(summary.total_days_off), f"{summary.total_capacity:.1f}h", style="bold")
    console.print(table)


@app.command()
def relatorio(
    sprint: str = typer.Option(..., help="Nome da sprint"),
    saida: Path = typer.Option(Path("output"), help="Diretório de saída dos relatórios"),
):
    """Gera o relatório de capacity da sprint em Markdown, PDF e Excel"""
    settings = carregar_configuracao()
    service = criar_servico(settings)
    try:
        summary, capacities = service.get_capacity_details(sprint)
        logger.info("Gerando relatório...")
        generator = CapacityReportGenerator(
            summary, sprint, str(saida), team_name=settings.azure_devops.team, capacities=capacities
        )
        generator.generate()
    except Exception as e:
        logger.error(f"Erro durante a geração do relatório: {str(e)}")
        raise typer.Exit(1)
    logger.info("Relatório concluído com sucesso!")


@app.command()
def servidor(
    host: Optional[str] = typer.Option(None, help="Endereço do servidor"),
    porta: Optional[int] = typer.Option(None, help="Porta do servidor"),
):
    """Inicia a API HTTP do painel"""
    settings = carregar_configuracao()
    host = host or settings.host
    porta = porta or settings.port
    logger.info(f"Servidor rodando na porta {porta}")
    uvicorn.run(create_app(settings), host=host, port=porta)


if __name__ == "__main__":
    app()

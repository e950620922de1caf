from datetime import datetime
from typing import Iterable, List
from loguru import logger

from ..models.entities import Iteration, SprintWindow

SPRINTS_BEFORE_CURRENT = 3
SPRINTS_AFTER_CURRENT = 3
SPRINTS_WITHOUT_CURRENT = 7


class SprintNotFound(LookupError):
    """Nenhuma iteração do time possui o nome informado"""


def select_window(iterations: Iterable[Iteration], now: datetime) -> SprintWindow:
    """
    Seleciona as sprints exibidas no seletor do painel

    A sprint atual é a primeira iteração com datas cujo intervalo [início, fim)
    contém `now`. Quando existe, a janela tem até três sprints antes e três
    depois dela; caso contrário, são retornadas as últimas sete sprints.
    Iterações sem nome são descartadas antes da seleção.

    Args:
        iterations: Iterações na ordem retornada pelo Azure DevOps
        now: Instante de referência

    Returns:
        SprintWindow: Sprints da janela e o índice (relativo) da sprint atual
    """
    named: List[Iteration] = [iteration for iteration in iterations if iteration.name]

    current_index = next(
        (i for i, iteration in enumerate(named) if iteration.contains(now)),
        None,
    )

    if current_index is None:
        start_index = max(0, len(named) - SPRINTS_WITHOUT_CURRENT)
        end_index = len(named)
        logger.info(f"Sprint atual não encontrada, exibindo as últimas {end_index - start_index} sprints")
    else:
        start_index = max(0, current_index - SPRINTS_BEFORE_CURRENT)
        end_index = min(len(named), current_index + SPRINTS_AFTER_CURRENT + 1)
        logger.info(f"Sprint atual: {named[current_index].name}")

    sprints = [
        iteration.model_copy(update={"is_current": i == current_index})
        for i, iteration in enumerate(named[start_index:end_index], start=start_index)
    ]
    return SprintWindow(
        sprints=sprints,
        current_index=None if current_index is None else current_index - start_index,
    )


def find_iteration(iterations: Iterable[Iteration], name: str) -> Iteration:
    """
    Busca uma iteração pelo nome exato

    Raises:
        SprintNotFound: Se nenhuma iteração tiver o nome informado
    """
    for iteration in iterations:
        if iteration.name == name:
            return iteration
    raise SprintNotFound(f"Sprint '{name}' não encontrada")

import pytest
from datetime import datetime, timedelta, timezone
from sprint_dashboard.models.entities import Iteration
from sprint_dashboard.services.sprints import SprintNotFound, find_iteration, select_window

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_iterations(count):
    """Cria sprints consecutivas de 14 dias"""
    return [
        Iteration(
            id=str(i),
            name=f"Sprint {i}",
            start_date=BASE_DATE + timedelta(days=14 * i),
            end_date=BASE_DATE + timedelta(days=14 * (i + 1)),
        )
        for i in range(count)
    ]


def moment_in(index):
    """Instante no meio da sprint de índice informado"""
    return BASE_DATE + timedelta(days=14 * index + 3)


def names(window):
    return [sprint.name for sprint in window.sprints]


def test_window_around_current():
    """Testa a janela de três sprints antes e três depois da atual"""
    window = select_window(make_iterations(10), moment_in(5))

    assert names(window) == [f"Sprint {i}" for i in range(2, 9)]
    assert window.current_index == 3
    assert window.current.name == "Sprint 5"
    assert [sprint.is_current for sprint in window.sprints] == [False, False, False, True, False, False, False]


def test_window_without_current():
    """Testa que, sem sprint atual, retorna as últimas sete"""
    window = select_window(make_iterations(10), datetime(2030, 1, 1, tzinfo=timezone.utc))

    assert names(window) == [f"Sprint {i}" for i in range(3, 10)]
    assert window.current_index is None
    assert window.current is None
    assert not any(sprint.is_current for sprint in window.sprints)


def test_window_short_list_without_current():
    """Testa lista com menos de sete sprints e nenhuma atual"""
    window = select_window(make_iterations(4), datetime(2030, 1, 1, tzinfo=timezone.utc))

    assert names(window) == [f"Sprint {i}" for i in range(4)]


def test_window_clipped_at_start():
    """Testa a janela quando a sprint atual é a primeira"""
    window = select_window(make_iterations(10), moment_in(0))

    assert names(window) == [f"Sprint {i}" for i in range(0, 4)]
    assert window.current_index == 0


def test_window_clipped_at_end():
    """Testa a janela quando a sprint atual é a última"""
    window = select_window(make_iterations(10), moment_in(9))

    assert names(window) == [f"Sprint {i}" for i in range(6, 10)]
    assert window.current_index == 3


def test_current_start_inclusive_end_exclusive():
    """Testa que o início da sprint é inclusivo e o fim exclusivo"""
    iterations = make_iterations(10)

    assert select_window(iterations, iterations[5].start_date).current.name == "Sprint 5"
    assert select_window(iterations, iterations[5].end_date).current.name == "Sprint 6"


def test_empty_iterations():
    """Testa lista vazia de iterações"""
    window = select_window([], moment_in(0))

    assert window.sprints == []
    assert window.current_index is None


def test_iterations_without_dates_are_never_current():
    """Testa que iterações sem datas nunca são a sprint atual"""
    iterations = [
        Iteration(name="Backlog"),
        Iteration(name="Sprint sem fim", start_date=BASE_DATE),
    ]

    window = select_window(iterations, moment_in(0))

    assert window.current_index is None
    assert names(window) == ["Backlog", "Sprint sem fim"]


def test_unnamed_iterations_are_excluded():
    """Testa que iterações sem nome são descartadas antes da janela"""
    iterations = make_iterations(3)
    iterations.insert(1, Iteration(name="", start_date=BASE_DATE, end_date=BASE_DATE + timedelta(days=100)))

    window = select_window(iterations, moment_in(1))

    assert names(window) == ["Sprint 0", "Sprint 1", "Sprint 2"]
    assert window.current_index == 1


def test_overlapping_iterations_first_wins():
    """Testa que, com sprints sobrepostas, a primeira encontrada é a atual"""
    iterations = [
        Iteration(name="A", start_date=BASE_DATE, end_date=BASE_DATE + timedelta(days=14)),
        Iteration(name="B", start_date=BASE_DATE, end_date=BASE_DATE + timedelta(days=14)),
    ]

    window = select_window(iterations, BASE_DATE + timedelta(days=1))

    assert window.current.name == "A"
    assert [sprint.is_current for sprint in window.sprints] == [True, False]


def test_naive_now_is_utc():
    """Testa instante de referência sem timezone"""
    window = select_window(make_iterations(3), datetime(2024, 1, 16))

    assert window.current.name == "Sprint 1"


def test_input_is_not_modified():
    """Testa que as iterações de entrada não são alteradas"""
    iterations = make_iterations(3)

    select_window(iterations, moment_in(1))

    assert not any(iteration.is_current for iteration in iterations)


def test_find_iteration():
    """Testa a busca de sprint pelo nome"""
    iteration = find_iteration(make_iterations(3), "Sprint 2")

    assert iteration.id == "2"


def test_find_iteration_not_found():
    """Testa a busca de sprint inexistente"""
    with pytest.raises(SprintNotFound, match="Sprint 9"):
        find_iteration(make_iterations(3), "Sprint 9")

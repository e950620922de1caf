import re
from datetime import date, datetime, timezone
from typing import Callable, List, Mapping, Optional, Pattern, Tuple
from loguru import logger

from ..models.entities import DueDateStatus


class UnrecognizedDateFormat(ValueError):
    """A string não corresponde a nenhum dos formatos de data suportados"""


_FRACTION = re.compile(r"\.(\d+)")


def _split_fraction(value: str) -> Tuple[str, int]:
    """Separa a fração de segundos (qualquer número de dígitos) em microssegundos"""
    match = _FRACTION.search(value)
    if not match:
        return value, 0
    microsecond = int(match.group(1)[:6].ljust(6, "0"))
    return value[:match.start()] + value[match.end():], microsecond


def _strptime(fmt: str) -> Callable[[str], datetime]:
    return lambda value: datetime.strptime(value, fmt)


def _strptime_seconds(fmt: str, utc: bool = False) -> Callable[[str], datetime]:
    def parse(value: str) -> datetime:
        value, microsecond = _split_fraction(value)
        parsed = datetime.strptime(value, fmt).replace(microsecond=microsecond)
        return parsed.replace(tzinfo=timezone.utc) if utc else parsed
    return parse


def _fromisoformat(value: str) -> datetime:
    # Antes do Python 3.11, fromisoformat não aceita "Z" nem frações fora de 3 ou 6 dígitos
    value, microsecond = _split_fraction(value)
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(microsecond=microsecond)


# Formatos aceitos, na ordem em que são tentados (vence o primeiro que converter).
# A expressão regular fixa a largura dos campos antes da conversão.
DATE_FORMATS: List[Tuple[str, Pattern[str], Callable[[str], datetime]]] = [
    ("iso_utc", re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z"),
     _strptime_seconds("%Y-%m-%dT%H:%M:%SZ", utc=True)),
    ("iso_naive", re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?"),
     _strptime_seconds("%Y-%m-%dT%H:%M:%S")),
    ("iso_offset", re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?[+-]\d{2}:\d{2}"),
     _strptime_seconds("%Y-%m-%dT%H:%M:%S%z")),
    ("date", re.compile(r"\d{4}-\d{2}-\d{2}"), _strptime("%Y-%m-%d")),
    ("br_datetime", re.compile(r"\d{2}/\d{2}/\d{4} \d{2}:\d{2}"), _strptime("%d/%m/%Y %H:%M")),
    ("br_date", re.compile(r"\d{2}/\d{2}/\d{4}"), _strptime("%d/%m/%Y")),
    ("us_short", re.compile(r"\d{1,2}/\d{1,2}/\d{4}"), _strptime("%m/%d/%Y")),
    # strptime compara o nome do mês sem diferenciar maiúsculas
    ("long", re.compile(r"[a-z]+ \d{1,2}, \d{4}", re.IGNORECASE), _strptime("%B %d, %Y")),
    ("slashed", re.compile(r"\d{4}/\d{2}/\d{2}"), _strptime("%Y/%m/%d")),
    ("rfc3339", re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})"), _fromisoformat),
]

# Campos do work item onde a data de entrega é procurada, em ordem de prioridade
DUE_DATE_FIELDS = [
    "Microsoft.VSTS.Scheduling.DueDate",
    "Microsoft.VSTS.Scheduling.TargetDate",
    "Microsoft.VSTS.Common.DueDate",
]

DUE_SOON_DAYS = 7


def normalize_date(raw: str) -> datetime:
    """
    Converte uma string de data em formato desconhecido para datetime

    Os formatos de DATE_FORMATS são tentados em ordem e o primeiro que converter
    vence. Datas sem timezone são interpretadas como UTC.

    Args:
        raw: Data em um dos formatos suportados

    Returns:
        datetime: Data convertida, sempre com timezone

    Raises:
        UnrecognizedDateFormat: Se nenhum formato reconhecer a string
    """
    value = raw.strip() if raw else ""
    logger.debug(f"Tentando converter data: {value}")

    for name, pattern, parse in DATE_FORMATS:
        if not pattern.fullmatch(value):
            continue
        try:
            parsed = parse(value)
        except ValueError:
            continue
        logger.debug(f"Data convertida com sucesso usando o formato {name}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    raise UnrecognizedDateFormat(f"Formato de data não reconhecido: {raw}")


def extract_due_date(fields: Mapping[str, str], item_id: Optional[int] = None) -> Optional[datetime]:
    """
    Obtém a data de entrega de um work item

    Usa o primeiro campo não vazio de DUE_DATE_FIELDS. Uma data em formato
    desconhecido é tratada como data não informada.

    Args:
        fields: Campos do work item já convertidos para string
        item_id: ID do work item (apenas para log)

    Returns:
        Optional[datetime]: Data de entrega ou None
    """
    for field in DUE_DATE_FIELDS:
        raw = fields.get(field)
        if raw:
            logger.debug(f"Data encontrada no campo {field} para US #{item_id}: {raw}")
            break
    else:
        logger.debug(f"Nenhuma data encontrada para US #{item_id} nos campos: {DUE_DATE_FIELDS}")
        return None

    try:
        return normalize_date(raw)
    except UnrecognizedDateFormat as e:
        logger.warning(f"Erro ao converter data '{raw}' para US #{item_id}: {e}")
        return None


def classify_due_date(due_date: Optional[datetime], today: date) -> DueDateStatus:
    """Classifica a data de entrega em relação ao dia de hoje"""
    if due_date is None:
        return DueDateStatus.NOT_INFORMED

    remaining = (due_date.date() - today).days
    if remaining < 0:
        return DueDateStatus.OVERDUE
    if remaining <= DUE_SOON_DAYS:
        return DueDateStatus.DUE_SOON
    return DueDateStatus.ON_TRACK

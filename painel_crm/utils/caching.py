"""
Cache local dos resultados do painel.

Um armazenamento chave/valor injetável (memória ou arquivo) guarda, para cada
chave, o payload JSON e um registro "<chave>_timestamp" com o epoch em ms.
O cache é só otimização: qualquer erro de leitura/escrita vira miss / no-op.
"""

import hashlib
import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, MutableMapping, Optional, Protocol

from painel_crm.config import (
    CACHE_PREFIXES,
    CACHE_SCHEMA_VERSION,
    SWEEP_MAX_AGE_MINUTES,
)
from painel_crm.errors import ParseError
from painel_crm.models.crm_models import Filtros
from painel_crm.utils.logger import setup_logger

logger = setup_logger(__name__)

TIMESTAMP_SUFFIX = "_timestamp"
RELOAD_FLAG = "_painel_crm_session_started"


# ─── Armazenamento chave/valor ───

class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class InMemoryStore:
    """Armazenamento em memória (testes e sessões efêmeras)."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class FileStore:
    """Um arquivo por chave em um diretório local."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))


# ─── Chave de cache ───

def dumps_deterministic(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), sort_keys=True, default=str)


def make_cache_key(name: str, filtros: Optional[Filtros] = None, **extra) -> str:
    """
    Chave determinística: mesmo filtro normalizado → mesma chave.

    As datas entram truncadas ao dia, então horários diferentes no mesmo dia
    produzem a mesma chave.
    """
    payload: dict[str, Any] = {"tipo": name, **extra}
    if filtros is not None:
        payload.update({
            "start": filtros.date_range.start_day.isoformat(),
            "end": filtros.date_range.end_day.isoformat(),
            "nucleo": filtros.nucleo or None,
            "loja": filtros.loja or None,
            "vendedor": filtros.vendedor or None,
            "arquiteto": filtros.arquiteto or None,
            "status": filtros.status or None,
        })
    digest = hashlib.md5(dumps_deterministic(payload).encode("utf-8")).hexdigest()[:12]
    return f"{CACHE_SCHEMA_VERSION}_{name}_cache_{digest}"


def _key_prefixes(prefixes: Iterable[str]) -> tuple[str, ...]:
    return tuple(f"{CACHE_SCHEMA_VERSION}_{p}_cache_" for p in prefixes)


# ─── Cache de resultados ───

@dataclass
class CacheEntry:
    key: str
    payload: Any
    written_at: int  # epoch em ms
    age_minutes: float


class ResultCache:
    """Cache de resultados com TTL e escrita "primeiro a gravar vence"."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def get(self, key: str) -> Optional[CacheEntry]:
        """Entrada existente (qualquer idade) ou None. Quem chama aplica o TTL."""
        try:
            raw = self.store.get(key)
            raw_ts = self.store.get(key + TIMESTAMP_SUFFIX)
            if raw is None or raw_ts is None:
                return None
            try:
                written_at = int(raw_ts)
                payload = json.loads(raw)
            except (TypeError, ValueError) as e:
                raise ParseError(f"Entrada de cache inválida: {e}", source=key) from e
        except (OSError, ParseError) as e:
            logger.warning("Cache ignorado key=%s: %s", key, e)
            return None
        age = (self._now_ms() - written_at) / 60000
        return CacheEntry(key=key, payload=payload, written_at=written_at, age_minutes=age)

    @staticmethod
    def is_fresh(entry: Optional[CacheEntry], ttl_minutes: float) -> bool:
        return entry is not None and entry.age_minutes < ttl_minutes

    def set(
        self,
        key: str,
        payload: Any,
        ttl_minutes: Optional[float] = None,
        force: bool = False,
    ) -> bool:
        """
        Grava o payload se não houver entrada válida para a chave.

        Com ttl_minutes, uma entrada expirada pode ser sobrescrita; sem ele,
        qualquer entrada existente bloqueia a escrita. force sobrescreve sempre.
        """
        if not force:
            existing = self.get(key)
            if existing is not None and (ttl_minutes is None or self.is_fresh(existing, ttl_minutes)):
                logger.debug("Cache já preenchido key=%s, escrita descartada", key)
                return False
        try:
            body = json.dumps(payload, ensure_ascii=False, default=str)
            self.store.set(key, body)
            self.store.set(key + TIMESTAMP_SUFFIX, str(self._now_ms()))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Falha ao gravar cache key=%s: %s", key, e)
            return False
        logger.info("Cache gravado key=%s", key)
        return True

    def invalidate(self, key: str) -> None:
        try:
            self.store.delete(key)
            self.store.delete(key + TIMESTAMP_SUFFIX)
        except OSError as e:
            logger.warning("Falha ao invalidar cache key=%s: %s", key, e)

    def _matching_keys(self, prefixes: Iterable[str]) -> list[str]:
        starts = _key_prefixes(prefixes)
        try:
            keys = self.store.keys()
        except OSError as e:
            logger.warning("Falha ao listar cache: %s", e)
            return []
        return [k for k in keys if k.startswith(starts) and not k.endswith(TIMESTAMP_SUFFIX)]

    def sweep_expired(
        self,
        prefixes: Iterable[str] = CACHE_PREFIXES,
        max_age_minutes: float = SWEEP_MAX_AGE_MINUTES,
    ) -> int:
        """Remove entradas dos prefixos conhecidos mais velhas que max_age_minutes."""
        removed = 0
        for key in self._matching_keys(prefixes):
            entry = self.get(key)
            if entry is None or entry.age_minutes > max_age_minutes:
                self.invalidate(key)
                removed += 1
        if removed:
            logger.info("Limpeza de cache: %d entradas expiradas removidas", removed)
        return removed

    def flush(self, prefixes: Iterable[str] = CACHE_PREFIXES) -> int:
        """Remove todas as entradas dos prefixos conhecidos."""
        keys = self._matching_keys(prefixes)
        for key in keys:
            self.invalidate(key)
        logger.info("Cache esvaziado: %d entradas", len(keys))
        return len(keys)


# ─── Reload da página ───

def is_reload(session_state: MutableMapping, navigation_type: Optional[str] = None) -> bool:
    """
    Detecta um reload completo da página.

    Usa o tipo de navegação quando disponível ("reload" / "navigate" /
    "back_forward"); sem ele, uma sessão sem a flag é um carregamento novo.
    """
    first_run = RELOAD_FLAG not in session_state
    session_state[RELOAD_FLAG] = True
    if navigation_type:
        return navigation_type == "reload" and first_run
    return first_run


def flush_on_reload(
    cache: ResultCache,
    session_state: MutableMapping,
    navigation_type: Optional[str] = None,
) -> bool:
    """Esvazia o cache uma vez por reload detectado."""
    if is_reload(session_state, navigation_type):
        cache.flush()
        return True
    return False

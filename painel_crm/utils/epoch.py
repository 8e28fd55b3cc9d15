"""
Proteção contra respostas fora de ordem.

Cada mudança de filtro abre uma nova época; resultados calculados para uma
época que já não é a atual são descartados por quem chama.
"""

from dataclasses import dataclass
from typing import Hashable


@dataclass(frozen=True)
class EpochToken:
    epoch: int
    filter_key: Hashable


class RequestEpoch:
    def __init__(self):
        self._epoch = 0
        self._filter_key: Hashable = None

    def begin(self, filter_key: Hashable) -> EpochToken:
        """Token da época para este filtro; filtro diferente abre nova época."""
        if filter_key != self._filter_key:
            self._epoch += 1
            self._filter_key = filter_key
        return EpochToken(self._epoch, filter_key)

    def is_current(self, token: EpochToken) -> bool:
        return token.epoch == self._epoch and token.filter_key == self._filter_key

    def accept(self, token: EpochToken, result):
        """Devolve o resultado se a época ainda é a atual, senão None."""
        return result if self.is_current(token) else None

"""Theme registry: frozen, process-wide lookup of attack tree style sheets."""

import logging
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .schemas import CategoryStyle, Theme

logger = logging.getLogger(__name__)

DEFAULT_THEME = 'default'


def _default() -> Theme:
    return Theme(
        name='default',
        fact=CategoryStyle(fillcolor='#D2D5DD', color='#2B303A'),
        attack=CategoryStyle(fillcolor='#ED96AC', color='#2B303A'),
        mitigation=CategoryStyle(fillcolor='#ABD2EC', color='#2B303A'),
        goal=CategoryStyle(fillcolor='#5F00C2', color='#2B303A', fontcolor='#FFFFFF'),
        reality=CategoryStyle(fillcolor='#2B303A', color='#2B303A', fontcolor='#FFFFFF'),
    )


def _dark() -> Theme:
    return Theme(
        name='dark',
        fact=CategoryStyle(fillcolor='#3B4252', color='#D8DEE9', fontcolor='#ECEFF4'),
        attack=CategoryStyle(fillcolor='#BF616A', color='#D8DEE9', fontcolor='#ECEFF4'),
        mitigation=CategoryStyle(fillcolor='#5E81AC', color='#D8DEE9', fontcolor='#ECEFF4'),
        goal=CategoryStyle(fillcolor='#B48EAD', color='#ECEFF4', fontcolor='#2E3440', style='filled, rounded, bold'),
        reality=CategoryStyle(fillcolor='#ECEFF4', color='#ECEFF4', fontcolor='#2E3440'),
        background='#2E3440',
        title_color='#ECEFF4',
        edge_color='#D8DEE9',
        edge_label_color='#88C0D0',
        backwards_edge_color='#81A1C1',
    )


def _classic() -> Theme:
    # Shapes follow the traditional attack tree notation.
    return Theme(
        name='classic',
        fact=CategoryStyle(shape='ellipse', style='filled', fillcolor='#F5F5F5', color='#333333'),
        attack=CategoryStyle(shape='box', style='filled', fillcolor='#FFDDDD', color='#C0392B'),
        mitigation=CategoryStyle(shape='octagon', style='filled', fillcolor='#DDFFDD', color='#1E8449'),
        goal=CategoryStyle(shape='invhouse', style='filled', fillcolor='#FFCCCC', color='#8B0000'),
        edge_color='#333333',
        edge_label_color='#333333',
        backwards_edge_color='#27AE60',
        fontname='Times-Roman',
    )


def _accessible() -> Theme:
    # Okabe-Ito palette, distinguishable under common colour vision deficiencies.
    return Theme(
        name='accessible',
        fact=CategoryStyle(fillcolor='#FFFFFF', color='#000000', style='filled, rounded, dashed'),
        attack=CategoryStyle(fillcolor='#E69F00', color='#000000'),
        mitigation=CategoryStyle(fillcolor='#56B4E9', color='#000000', style='filled, rounded, bold'),
        goal=CategoryStyle(shape='doubleoctagon', fillcolor='#000000', color='#000000', fontcolor='#FFFFFF', style='filled'),
        reality=CategoryStyle(fillcolor='#000000', color='#000000', fontcolor='#FFFFFF'),
        edge_color='#000000',
        edge_label_color='#000000',
        backwards_edge_color='#0072B2',
    )


class ThemeRegistry:
    """Immutable name -> Theme table with a default fallback."""

    def __init__(self, themes: Iterable[Theme], default: str = DEFAULT_THEME):
        table: dict[str, Theme] = {}
        for theme in themes:
            if theme.name in table:
                raise ValueError(f"Theme '{theme.name}' registered twice")
            table[theme.name] = theme
        if default not in table:
            raise ValueError(f"Default theme '{default}' is not registered")
        self._themes: Mapping[str, Theme] = MappingProxyType(table)
        self._default = default

    @classmethod
    def builtin(cls) -> 'ThemeRegistry':
        return cls([_default(), _dark(), _classic(), _accessible()])

    @property
    def default(self) -> Theme:
        return self._themes[self._default]

    def resolve(self, name: Optional[str]) -> Theme:
        """Look up a theme by name. Unknown names fall back to the default theme."""
        if name is None:
            return self.default
        theme = self._themes.get(name)
        if theme is None:
            logger.debug("Unknown theme '%s', falling back to '%s'", name, self._default)
            return self.default
        return theme

    def list_names(self) -> list[str]:
        return list(self._themes)

    def __contains__(self, name: object) -> bool:
        return name in self._themes


THEMES = ThemeRegistry.builtin()

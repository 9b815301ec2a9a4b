""" A toolkit independent model of the editor UI for the taxonomy text block and inline format. The controls
returned here describe what the settings panel (for the block) or the dialog (for the inline format) shows, and
the classes apply the same edits to the settings that the UI would. """

from __future__ import annotations

import logging
import typing as t

from queryfilter.format import RichTextValue, apply_format
from queryfilter.settings import (
  FILTER_OPTIONS,
  TERM_FILTER_TYPES,
  FilterType,
  Settings,
  ValueType,
  change_filter_type,
  normalize,
  parse_settings,
  value_type_options,
)

logger = logging.getLogger(__name__)

PANEL_TITLE = 'Display Settings'
DIALOG_TITLE = 'Dynamic Taxonomy Text'
TOOLBAR_TITLE = 'Taxonomy Text'

#: Maps the camelCase attribute names to #Settings fields.
ATTRIBUTE_FIELDS = {
  'filterType': 'filter_type',
  'valueType': 'value_type',
  'prefix': 'prefix',
  'suffix': 'suffix',
  'link': 'link',
  'showAfterFirstPage': 'show_after_first_page',
}


class Control(t.NamedTuple):
  #: One of `select`, `toggle` or `text`.
  kind: str

  #: The camelCase attribute the control edits.
  key: str
  label: str
  value: t.Any
  options: list[tuple[str, str]] | None = None
  disabled: bool = False


def preview_text(settings: Settings) -> str:
  """ The text shown in place of the block in the editor, where no query context is available. """

  if settings.filter_type == FilterType.SORT:
    preview = 'Selected Sort'
  elif settings.filter_type == FilterType.SEARCH:
    preview = 'Searched Term'
  elif settings.value_type == ValueType.DESCRIPTION:
    preview = 'Selected Term Description'
  else:
    preview = 'Selected Term'
  return f'{settings.prefix}{preview}{settings.suffix}'


def preview_class_name(settings: Settings) -> str:
  return f'taxonomy-text taxonomy-text--{settings.filter_type.value}'


def _filter_source(settings: Settings) -> Control:
  return Control('select', 'filterType', 'Filter Source', settings.filter_type.value, list(FILTER_OPTIONS))


def _value_type(settings: Settings) -> Control | None:
  if settings.filter_type == FilterType.SEARCH:
    return None
  return Control(
    'select', 'valueType', 'Value Type', settings.value_type.value,
    value_type_options(settings.filter_type),
    disabled=settings.filter_type == FilterType.PAGE,
  )


def _link(settings: Settings) -> Control | None:
  if settings.filter_type not in TERM_FILTER_TYPES:
    return None
  return Control('toggle', 'link', 'Link to term archive', settings.link)


def _show_after_first_page(settings: Settings) -> Control | None:
  if settings.filter_type != FilterType.PAGE:
    return None
  return Control('toggle', 'showAfterFirstPage', 'Only show after page 1', settings.show_after_first_page)


def _affixes(settings: Settings) -> list[Control]:
  return [
    Control('text', 'prefix', 'Prefix Text', settings.prefix),
    Control('text', 'suffix', 'Suffix Text', settings.suffix),
  ]


def block_controls(attributes: Settings | t.Mapping[str, t.Any]) -> list[Control]:
  """ The controls of the block settings panel, in display order, for a #Settings object or camelCase block
  attributes. """

  settings = attributes if isinstance(attributes, Settings) else Settings.from_attributes(attributes)

  controls = [_filter_source(settings), _link(settings), _value_type(settings), _show_after_first_page(settings)]
  return [c for c in controls if c is not None] + _affixes(settings)


def dialog_controls(settings: Settings) -> list[Control]:
  """ The controls of the inline format dialog, in display order. """

  controls = [_filter_source(settings), _value_type(settings), *_affixes(settings)]
  controls += [_link(settings), _show_after_first_page(settings)]
  return [c for c in controls if c is not None]


def _set(settings: Settings, key: str, value: t.Any) -> Settings:
  if key == 'filterType':
    return change_filter_type(settings, value)
  if key not in ATTRIBUTE_FIELDS:
    raise KeyError(key)
  if key == 'valueType':
    value = ValueType(value)
  return settings.replace(**{ATTRIBUTE_FIELDS[key]: value})


class BlockEditor:
  """ Edits the attributes of a taxonomy text block. """

  def __init__(self, attributes: t.Mapping[str, t.Any] | None = None) -> None:
    self.settings = Settings.from_attributes(attributes or {})

  @property
  def attributes(self) -> dict[str, t.Any]:
    return self.settings.to_attributes()

  def set_attribute(self, key: str, value: t.Any) -> None:
    """ Set a single attribute by its camelCase name. Changing the filter type adjusts the value type. """

    self.settings = _set(self.settings, key, value)

  def set_filter_type(self, filter_type: FilterType | str) -> None:
    self.set_attribute('filterType', filter_type)

  def controls(self) -> list[Control]:
    return block_controls(self.settings)

  def preview(self) -> str:
    return preview_text(self.settings)

  def class_name(self) -> str:
    return preview_class_name(self.settings)


class FormatDialog:
  """ The dialog opened from the rich text toolbar to insert or edit a taxonomy text inline format. The dialog
  starts out with the settings of the active format (if any) and applies them to the rich text value. """

  def __init__(self, active_attribute: str | None = None) -> None:
    self.settings = normalize(parse_settings(active_attribute))
    self.is_open = False

  def open(self) -> None:
    self.is_open = True

  def close(self) -> None:
    self.is_open = False

  def set_field(self, key: str, value: t.Any) -> None:
    self.settings = normalize(_set(self.settings, key, value))

  def controls(self) -> list[Control]:
    return dialog_controls(self.settings)

  def apply(self, value: RichTextValue, is_active: bool | None = None) -> RichTextValue:
    """ Applies the current settings to *value* and closes the dialog. """

    new_value = apply_format(value, self.settings, is_active)
    logger.debug('Applied taxonomy text format %s', self.settings)
    self.close()
    return new_value

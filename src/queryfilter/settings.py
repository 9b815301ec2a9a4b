""" The settings record shared by the taxonomy text block and the inline format.

Block attributes and the JSON string stored in the `data-query-filter-text` attribute of the inline format
both use camelCase keys:

```json
{"filterType": "category", "valueType": "title", "prefix": "", "suffix": "", "link": false, "showAfterFirstPage": true}
```
"""

from __future__ import annotations

import dataclasses
import enum
import json
import logging
import typing as t

logger = logging.getLogger(__name__)


class FilterType(str, enum.Enum):
  TAG = 'tag'
  CATEGORY = 'category'
  SORT = 'sort'
  PAGE = 'page'
  YOAST_PRIMARY_CATEGORY = 'yoast_primary_category'
  SEARCH = 'search'


class ValueType(str, enum.Enum):
  TITLE = 'title'
  DESCRIPTION = 'description'
  PAGE = 'page'


#: Filter types that resolve to a taxonomy term and can thus link to the term archive.
TERM_FILTER_TYPES = frozenset({FilterType.TAG, FilterType.CATEGORY, FilterType.YOAST_PRIMARY_CATEGORY})

#: Filter types that have no notion of a description.
TITLE_ONLY_FILTER_TYPES = frozenset({FilterType.SORT, FilterType.SEARCH})

FILTER_OPTIONS: list[tuple[str, str]] = [
  ('Tag', FilterType.TAG.value),
  ('Category', FilterType.CATEGORY.value),
  ('Sort', FilterType.SORT.value),
  ('Page Number', FilterType.PAGE.value),
  ('Yoast Primary Category', FilterType.YOAST_PRIMARY_CATEGORY.value),
  ('Searched Term', FilterType.SEARCH.value),
]

VALUE_TYPE_OPTIONS: list[tuple[str, str]] = [
  ('Title', ValueType.TITLE.value),
  ('Description', ValueType.DESCRIPTION.value),
  ('Page Number', ValueType.PAGE.value),
]


class InvalidSettingsError(ValueError):
  """ Raised when block attributes contain a value that can not be mapped to a #Settings field. """

  def __init__(self, key: str, value: t.Any) -> None:
    self.key = key
    self.value = value

  def __str__(self) -> str:
    return f'invalid value for {self.key!r}: {self.value!r}'


@dataclasses.dataclass(frozen=True)
class Settings:
  """ Configuration of a single taxonomy text, either a block or an inline format. """

  filter_type: FilterType = FilterType.TAG
  value_type: ValueType = ValueType.TITLE
  prefix: str = ''
  suffix: str = ''

  #: Link the text to the term archive. Only meaningful for #TERM_FILTER_TYPES.
  link: bool = False

  #: Hide the text on the first page. Only meaningful for #FilterType.PAGE.
  show_after_first_page: bool = True

  @classmethod
  def from_attributes(cls, attributes: t.Mapping[str, t.Any]) -> Settings:
    """ Create settings from camelCase block attributes. Missing or empty values take the default. Raises an
    #InvalidSettingsError if the filter or value type is not known. """

    filter_type = attributes.get('filterType') or FilterType.TAG
    value_type = attributes.get('valueType') or ValueType.TITLE
    try:
      filter_type = FilterType(filter_type)
    except ValueError:
      raise InvalidSettingsError('filterType', filter_type)
    try:
      value_type = ValueType(value_type)
    except ValueError:
      raise InvalidSettingsError('valueType', value_type)

    link = attributes.get('link')
    show_after_first_page = attributes.get('showAfterFirstPage')
    return cls(
      filter_type=filter_type,
      value_type=value_type,
      prefix=str(attributes.get('prefix') or ''),
      suffix=str(attributes.get('suffix') or ''),
      link=cls.link if link is None else bool(link),
      show_after_first_page=cls.show_after_first_page if show_after_first_page is None else bool(show_after_first_page),
    )

  def to_attributes(self) -> dict[str, t.Any]:
    return {
      'filterType': self.filter_type.value,
      'valueType': self.value_type.value,
      'prefix': self.prefix,
      'suffix': self.suffix,
      'link': self.link,
      'showAfterFirstPage': self.show_after_first_page,
    }

  def replace(self, **changes: t.Any) -> Settings:
    return dataclasses.replace(self, **changes)


DEFAULT_SETTINGS = Settings()


def normalize(settings: Settings) -> Settings:
  """ Returns *settings* with the value type made consistent with the filter type. """

  if settings.filter_type == FilterType.PAGE and settings.value_type != ValueType.PAGE:
    return settings.replace(value_type=ValueType.PAGE)
  if settings.filter_type in TITLE_ONLY_FILTER_TYPES and settings.value_type == ValueType.DESCRIPTION:
    return settings.replace(value_type=ValueType.TITLE)
  return settings


def change_filter_type(settings: Settings, filter_type: FilterType | str) -> Settings:
  """ Switch the filter source, adjusting the value type the same way the editor does. """

  return normalize(settings.replace(filter_type=FilterType(filter_type)))


def value_type_options(filter_type: FilterType | str) -> list[tuple[str, str]]:
  """ The value types that can be selected for the given filter type. """

  filter_type = FilterType(filter_type)
  if filter_type == FilterType.PAGE:
    return [o for o in VALUE_TYPE_OPTIONS if o[1] == ValueType.PAGE.value]
  if filter_type in TITLE_ONLY_FILTER_TYPES:
    return [o for o in VALUE_TYPE_OPTIONS if o[1] == ValueType.TITLE.value]
  return list(VALUE_TYPE_OPTIONS)


def get_option_label(options: t.Iterable[tuple[str, str]], value: str) -> str:
  for label, option_value in options:
    if option_value == value:
      return label
  return value


def parse_settings(attribute_value: str | None) -> Settings:
  """ Parse the serialized settings of an inline format. This never fails: an empty or malformed value yields
  #DEFAULT_SETTINGS, and an unknown filter or value type is replaced by its default. """

  if not attribute_value:
    return DEFAULT_SETTINGS

  try:
    parsed = json.loads(attribute_value)
  except json.JSONDecodeError as exc:
    logger.warning('Unable to decode taxonomy text settings <fg=yellow>%r</fg> (%s)', attribute_value, exc)
    return DEFAULT_SETTINGS

  if not isinstance(parsed, dict):
    logger.warning('Expected a JSON object for taxonomy text settings, got <fg=yellow>%r</fg>', attribute_value)
    return DEFAULT_SETTINGS

  # Invalid fields fall back to their default, the remaining fields are kept.
  while True:
    try:
      return Settings.from_attributes(parsed)
    except InvalidSettingsError as exc:
      logger.warning('Ignoring taxonomy text setting: %s', exc)
      parsed = {k: v for k, v in parsed.items() if k != exc.key}


def serialize_settings(settings: Settings) -> str:
  return json.dumps(settings.to_attributes(), separators=(',', ':'))

from __future__ import annotations

import logging
import typing as t

from queryfilter.context import BlockContext, QueryContext, Term
from queryfilter.settings import FilterType, Settings, ValueType, normalize

logger = logging.getLogger(__name__)

#: The taxonomy each term filter type reads its active term from.
FILTER_TAXONOMIES = {
  FilterType.TAG: 'post_tag',
  FilterType.CATEGORY: 'category',
  FilterType.YOAST_PRIMARY_CATEGORY: 'category',
}


class TaxonomyTextResult(t.NamedTuple):
  text: str
  url: str | None
  filter_type: str


def get_taxonomy_text_result(
  settings: Settings | t.Mapping[str, t.Any],
  block: BlockContext,
  context: QueryContext,
) -> TaxonomyTextResult | None:
  """ Resolve the text to display for *settings* in the current request. Returns `None` if there is nothing to
  display, for example when no term is active or when the page number should only be shown after page 1.

  Arguments:
    settings: The taxonomy text settings, or the raw block attributes.
    block: The query loop context of the block.
    context: The state of the current request.
  """

  if not isinstance(settings, Settings):
    settings = Settings.from_attributes(settings)
  settings = normalize(settings)

  url: str | None = None
  if settings.value_type == ValueType.PAGE:
    value = _resolve_page(settings, block, context)
  elif settings.filter_type in FILTER_TAXONOMIES:
    taxonomy = FILTER_TAXONOMIES[settings.filter_type]
    term = _resolve_term(settings.filter_type, block, context)
    if term is None:
      return None
    value = term.description if settings.value_type == ValueType.DESCRIPTION else term.name
    url = context.term_link(taxonomy, term)
  elif settings.filter_type == FilterType.SORT:
    value = _resolve_sort_label(block, context)
  elif settings.filter_type == FilterType.SEARCH:
    value = _resolve_search(block, context)
  else:
    raise RuntimeError(f'unhandled filter type {settings.filter_type!r}')

  if not value:
    return None

  return TaxonomyTextResult(settings.prefix + value + settings.suffix, url, settings.filter_type.value)


def get_current_page(block: BlockContext, context: QueryContext) -> int:
  """ Returns the page number of the query loop, defaulting to 1 for missing or malformed values. """

  value = context.get_param(block.param_name('page'))
  if value is None:
    return 1
  try:
    return max(int(value), 1)
  except ValueError:
    logger.debug('Ignoring malformed page number <fg=yellow>%r</fg>', value)
    return 1


def _resolve_page(settings: Settings, block: BlockContext, context: QueryContext) -> str | None:
  page = get_current_page(block, context)
  # showAfterFirstPage is the "Only show after page 1" toggle: when on, page 1 renders nothing.
  if settings.filter_type == FilterType.PAGE and settings.show_after_first_page and page <= 1:
    return None
  return str(page)


def _first_slug(value: str | None) -> str | None:
  if not value:
    return None
  slug = value.split(',')[0].strip()
  return slug or None


def _resolve_term(filter_type: FilterType, block: BlockContext, context: QueryContext) -> Term | None:
  taxonomy = FILTER_TAXONOMIES[filter_type]

  if filter_type == FilterType.YOAST_PRIMARY_CATEGORY:
    slug = context.primary_category
  else:
    slug = _first_slug(context.get_param(block.param_name(taxonomy)))
    if slug is None and context.queried_term and context.queried_term.taxonomy == taxonomy:
      slug = context.queried_term.slug

  if slug is None:
    return None

  term = context.get_term(taxonomy, slug)
  if term is None:
    logger.debug('Unknown term <fg=yellow>%s</fg> in taxonomy <fg=cyan>%s</fg>', slug, taxonomy)
  return term


def _resolve_sort_label(block: BlockContext, context: QueryContext) -> str | None:
  key = context.get_param(block.param_name('orderby'))
  if key:
    option = context.get_sort_option(key)
    if option is None:
      logger.debug('Unknown sort option <fg=yellow>%s</fg>', key)
    return option.label if option else None

  order_by = block.query.get('orderBy')
  order = block.query.get('order')
  for option in context.sort_options:
    if option.order_by and option.order_by == order_by and (option.order is None or option.order == order):
      return option.label
  return None


def _resolve_search(block: BlockContext, context: QueryContext) -> str | None:
  search = context.get_param(block.param_name('s'))
  if not search:
    search = block.query.get('search') or None
  return search.strip() if search else None

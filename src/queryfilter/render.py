from __future__ import annotations

import dataclasses
import logging
import re
import typing as t
import urllib.parse

import jinja2

from queryfilter.context import BlockContext, QueryContext
from queryfilter.resolver import TaxonomyTextResult, get_taxonomy_text_result
from queryfilter.settings import TERM_FILTER_TYPES, FilterType, Settings

logger = logging.getLogger(__name__)

#: The class name every rendered taxonomy text block carries.
BLOCK_CLASS_NAME = 'wp-block-query-filter-taxonomy-text'

INLINE_CLASS_NAME = 'taxonomy-text-inline'

ALLOWED_URL_SCHEMES = frozenset({'http', 'https', 'mailto'})


def sanitize_html_class(value: str) -> str:
  """ Strips everything from *value* that is not valid in an HTML class name. """

  value = re.sub(r'%[a-fA-F0-9]{2}', '', value)
  return re.sub(r'[^A-Za-z0-9_-]', '', value)


def esc_url(url: str | None) -> str:
  """ Returns *url* if it is relative or uses an allowed scheme, otherwise an empty string. The returned value
  still needs to be HTML-escaped. """

  if not url:
    return ''
  url = url.strip()
  try:
    scheme = urllib.parse.urlsplit(url).scheme
  except ValueError as exc:
    logger.warning('Refusing to render malformed URL <fg=yellow>%s</fg> (%s)', url, exc)
    return ''
  if scheme and scheme.lower() not in ALLOWED_URL_SCHEMES:
    logger.warning('Refusing to render URL with scheme <fg=yellow>%s</fg>', scheme)
    return ''
  return url


@dataclasses.dataclass
class TaxonomyTextRenderer:
  """ Renders taxonomy text results as HTML using Jinja templates. Comes with a default template. """

  #: One or more directories from which to load templates. Template files in these directories take priority
  #: over the default template delivered with the package.
  directories: list[str] | None = None

  template_name: str = 'taxonomy_text.html.jinja'

  def __post_init__(self) -> None:
    self._env = jinja2.Environment(
      loader=jinja2.ChoiceLoader([
        jinja2.FileSystemLoader(self.directories or []),
        jinja2.PackageLoader('queryfilter'),
      ]),
      autoescape=True,
    )

  def render(self, result: TaxonomyTextResult, link: bool, class_names: t.Sequence[str]) -> str:
    link_url = esc_url(result.url) if link else ''
    class_name = ' '.join(filter(None, class_names))
    return self._env.get_template(self.template_name).render(result=result, link_url=link_url, class_name=class_name)

  def render_block(
    self,
    attributes: t.Mapping[str, t.Any],
    block: BlockContext,
    context: QueryContext,
  ) -> str:
    """ The render callback of the taxonomy text block. Returns an empty string if nothing resolves. """

    settings = Settings.from_attributes(attributes)
    result = get_taxonomy_text_result(settings, block, context)
    if result is None:
      return ''

    class_names = [
      BLOCK_CLASS_NAME,
      'taxonomy-text',
      'taxonomy-text--' + sanitize_html_class(result.filter_type),
      attributes.get('className') or '',
    ]
    return self.render(result, _can_link(settings), class_names)

  def render_inline(self, settings: Settings, block: BlockContext, context: QueryContext) -> str:
    """ Renders a stored inline format. Returns an empty string if nothing resolves. """

    result = get_taxonomy_text_result(settings, block, context)
    if result is None:
      return ''
    class_names = [INLINE_CLASS_NAME, 'taxonomy-text--' + sanitize_html_class(result.filter_type)]
    return self.render(result, _can_link(settings), class_names)


def _can_link(settings: Settings) -> bool:
  return settings.link and FilterType(settings.filter_type) in TERM_FILTER_TYPES


_default_renderer: TaxonomyTextRenderer | None = None


def get_default_renderer() -> TaxonomyTextRenderer:
  """ Returns the renderer with the default template, created on first use. """

  global _default_renderer
  if _default_renderer is None:
    _default_renderer = TaxonomyTextRenderer()
  return _default_renderer


def render_block(attributes: t.Mapping[str, t.Any], block: BlockContext, context: QueryContext) -> str:
  return get_default_renderer().render_block(attributes, block, context)


def render_inline(settings: Settings, block: BlockContext, context: QueryContext) -> str:
  return get_default_renderer().render_inline(settings, block, context)

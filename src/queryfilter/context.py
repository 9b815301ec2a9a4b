""" The query context is the state of the current content listing request that a taxonomy text is resolved
against. It is supplied by the host, usually by loading it from a YAML file:

```yaml
site_url: https://example.org
params:
  query-3-category: news
  query-3-page: 2
taxonomies:
  category:
    - { slug: news, name: News, description: Latest announcements }
sort_options:
  - { key: date-desc, label: Newest first, order_by: date, order: desc }
```
"""

from __future__ import annotations

import dataclasses
import logging
import typing as t
from pathlib import Path

logger = logging.getLogger(__name__)

#: The main query variables that are used when a block does not belong to a specific query loop.
MAIN_QUERY_VARS = {
  'post_tag': 'tag',
  'category': 'category_name',
  'orderby': 'orderby',
  's': 's',
  'page': 'paged',
}


class ContextError(Exception):
  """ Raised when a query context can not be loaded. """


@dataclasses.dataclass
class Term:
  slug: str
  name: str
  description: str = ''

  #: The URL of the term archive. If not set, it is derived from #QueryContext.site_url.
  link: str | None = None


@dataclasses.dataclass
class SortOption:
  #: The value of the `orderby` request parameter that selects this option.
  key: str
  label: str

  #: The query block `orderBy` and `order` attributes this option corresponds to.
  order_by: str | None = None
  order: str | None = None


@dataclasses.dataclass
class QueriedTerm:
  taxonomy: str
  slug: str


@dataclasses.dataclass
class QueryContext:
  """ Ambient state of the current request. """

  #: The request query variables.
  params: dict[str, t.Any] = dataclasses.field(default_factory=dict)

  #: The known terms per taxonomy name (e.g. `post_tag`, `category`).
  taxonomies: dict[str, list[Term]] = dataclasses.field(default_factory=dict)

  sort_options: list[SortOption] = dataclasses.field(default_factory=list)

  #: The term of the archive page being displayed, if any.
  queried_term: QueriedTerm | None = None

  #: The slug of the Yoast primary category of the current post.
  primary_category: str | None = None

  site_url: str = ''

  #: URL path segment per taxonomy for term archive links.
  permalink_bases: dict[str, str] = dataclasses.field(default_factory=lambda: {'post_tag': 'tag', 'category': 'category'})

  def get_param(self, name: str) -> str | None:
    value = self.params.get(name)
    if value is None:
      return None
    return str(value)

  def get_term(self, taxonomy: str, slug: str) -> Term | None:
    for term in self.taxonomies.get(taxonomy, []):
      if term.slug == slug:
        return term
    return None

  def get_sort_option(self, key: str) -> SortOption | None:
    for option in self.sort_options:
      if option.key == key:
        return option
    return None

  def term_link(self, taxonomy: str, term: Term) -> str | None:
    """ Returns the archive URL of *term*. """

    if term.link:
      return term.link
    base = self.permalink_bases.get(taxonomy)
    if base is None:
      return None
    return f'{self.site_url.rstrip("/")}/{base}/{term.slug}/'


@dataclasses.dataclass
class BlockContext:
  """ Context that a block receives from the query loop it is placed in. """

  #: The attributes of the enclosing query block (e.g. `orderBy`, `order`, `search`, `inherit`).
  query: dict[str, t.Any] = dataclasses.field(default_factory=dict)

  #: The ID of the enclosing query block. `None` if the block uses the main query.
  query_id: int | None = None

  def param_name(self, name: str) -> str:
    """ Returns the name of the request parameter for the given filter *name*, which is either a taxonomy name or
    one of `orderby`, `s` and `page`. """

    if self.query_id is None:
      return MAIN_QUERY_VARS.get(name, name)
    return f'query-{self.query_id}-{name}'


def load_context(path: Path) -> QueryContext:
  """ Loads a #QueryContext from a YAML file. """

  import databind.json
  import yaml
  from databind.core import ConversionError

  try:
    data = yaml.safe_load(path.read_text())
  except OSError as exc:
    raise ContextError(f'unable to read {path}: {exc}') from exc
  except yaml.YAMLError as exc:
    raise ContextError(f'invalid YAML in {path}: {exc}') from exc

  if data is None:
    data = {}

  try:
    context = databind.json.load(data, QueryContext)
  except ConversionError as exc:
    raise ContextError(f'invalid query context in {path}: {exc}') from exc

  logger.debug('Loaded query context from <path>%s</path>', path)
  return context

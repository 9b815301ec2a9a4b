from __future__ import annotations

import abc
import dataclasses
import hashlib
import importlib
import logging
import re
import typing as t
from pathlib import Path

import typing_extensions as te

from queryfilter.context import QueryContext

logger = logging.getLogger(__name__)

_Closure: te.TypeAlias = 't.Callable[[MarkdownPreprocessor], t.Any]'


@dataclasses.dataclass
class MarkdownFile:
  """ Represents a Markdown (or HTML) file and its contents, to be processed by #MarkdownPreprocessor#s. """

  #: The path to the source file.
  path: Path

  #: The path where the file will be written to. Same as #path when files are processed in place.
  output_path: Path

  #: The content to be preprocessed.
  content: str

  def __post_init__(self) -> None:
    self._hash = hashlib.md5(self.content.encode()).hexdigest()

  def changed(self) -> bool:
    return hashlib.md5(self.content.encode()).hexdigest() != self._hash


class MarkdownFiles(t.List[MarkdownFile]):

  def __init__(self, files: t.Iterable[MarkdownFile], context: QueryContext) -> None:
    super().__init__(files)
    self.context = context


class MarkdownPipeline:
  """ Preprocesses Markdown files with a sequence of #MarkdownPreprocessor plugins, in the order that they were
  registered with #use(). The `taxonomy-text` preprocessor is registered by default.

  As a final step, escaped tags are unescaped (i.e. `\\{@` is replaced with `{@`).
  """

  #: The file suffixes that #execute() picks up when recursing into directories.
  suffixes: tuple[str, ...] = ('.md', '.html')

  def __init__(self, context: QueryContext, encoding: str | None = None) -> None:
    from queryfilter.markdown.tags.taxonomy_text import TaxonomyTextProcessor

    self.context = context
    self.encoding = encoding
    self._processors: dict[str, MarkdownPreprocessor] = {}
    self.use(TaxonomyTextProcessor(self, 'taxonomy-text'))

  @property
  def processors(self) -> t.Mapping[str, MarkdownPreprocessor]:
    return self._processors

  def use(
    self,
    processor: str | MarkdownPreprocessor,
    closure: _Closure | None = None,
    name: str | None = None,
  ) -> MarkdownPreprocessor:
    """ Register a processor for use in the pipeline. A string is looked up as an entrypoint first and then as a
    fully qualified class name. """

    from nr.util.plugins import NoSuchEntrypointError, load_entrypoint

    if isinstance(processor, str):
      try:
        processor_cls = load_entrypoint(MarkdownPreprocessor, processor)  # type: ignore
      except NoSuchEntrypointError:
        module_name, class_name = processor.rpartition('.')[::2]
        module = importlib.import_module(module_name)
        processor_cls = getattr(module, class_name)
      processor = processor_cls(self, name or processor)
    else:
      if not isinstance(processor, MarkdownPreprocessor):
        raise TypeError(f'expected MarkdownPreprocessor, got {type(processor).__name__}')
      if name is not None and name != processor.name:
        raise RuntimeError(f'mismatching "name": {name!r} != {processor.name!r}')

    if processor.name in self._processors:
      raise ValueError(f'processor name {processor.name!r} is already in use')
    self._processors[processor.name] = processor

    if closure:
      closure(processor)

    return processor

  def preprocessor(self, processor_name: str, closure: _Closure | None = None) -> MarkdownPreprocessor:
    """ Access or reconfigure a processor that is already registered. """

    processor = self._processors[processor_name]
    if closure is not None:
      closure(processor)
    return processor

  def process_files(self, files: MarkdownFiles) -> None:
    for processor in self._processors.values():
      processor.setup()

    for processor in self._processors.values():
      logger.debug('Preprocess (<fg=cyan>%s</fg>)', processor.name)
      processor.process_files(files)

    for file in files:
      file.content = re.sub(r'(?<!\\)\\\{@', '{@', file.content)
      file.content = re.sub(r'^\\@', '@', file.content, flags=re.M)

  def process(self, content: str, path: Path | None = None) -> str:
    """ Preprocess a single piece of content. """

    path = path or Path('<string>')
    files = MarkdownFiles([MarkdownFile(path, path, content)], self.context)
    self.process_files(files)
    return files[0].content

  def execute(self, paths: t.Iterable[Path], output_directory: Path | None = None) -> list[Path]:
    """ Preprocess the given files and all files with one of the #suffixes in the given directories. Files are
    written to *output_directory* (preserving paths relative to the directory they were found in), or in place if
    it is not set. Only files whose content changed are written. Returns the paths that were written. """

    from nr.util.fs import recurse_directory

    files = MarkdownFiles([], self.context)

    def _add(path: Path, root: Path) -> None:
      if output_directory is None:
        output_path = path
      else:
        output_path = output_directory / path.relative_to(root)
      files.append(MarkdownFile(path, output_path, path.read_text(self.encoding)))

    for path in paths:
      if path.is_dir():
        for child in recurse_directory(path):
          if child.is_file() and child.suffix in self.suffixes:
            _add(child, path)
      else:
        _add(path, path.parent)

    self.process_files(files)

    written = []
    for file in files:
      if file.changed() or file.output_path != file.path:
        file.output_path.parent.mkdir(parents=True, exist_ok=True)
        file.output_path.write_text(file.content, self.encoding)
        logger.info('Write <path>%s</path>', file.output_path)
        written.append(file.output_path)
    return written


class MarkdownPreprocessor(abc.ABC):
  """ Interface for plugins to process markdown files. """

  #: The entrypoint under which preprocessor plugins must be registered.
  ENTRYPOINT = 'queryfilter.markdown.preprocessors'

  def __init__(self, pipeline: MarkdownPipeline, name: str) -> None:
    self.pipeline = pipeline
    self.name = name
    self.__post_init__()

  def __post_init__(self) -> None:
    pass

  def setup(self) -> None:
    """ Called before any processor processes files. """

  @abc.abstractmethod
  def process_files(self, files: MarkdownFiles) -> None:
    """ Process the file contents in *files*. """

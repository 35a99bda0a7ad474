"""
Copy/paste buffer for annotations.
"""
import copy
import dataclasses
import json
import logging
from typing import Iterable, List

import pyperclip

from .annotations.models import ID_PREFIXES, Annotation, new_id
from .annotations.store import AnnotationStore

logger = logging.getLogger(__name__)


class ClipboardController:
    """
    Holds copied annotations for later pasting.

    When mirror_to_system is set, copied annotations are also placed on the
    system clipboard as JSON text.
    """

    def __init__(self, mirror_to_system: bool = False):
        self.mirror_to_system = mirror_to_system
        self._buffer: List[Annotation] = []

    def has_content(self) -> bool:
        return bool(self._buffer)

    def contents(self) -> List[Annotation]:
        return [copy.deepcopy(ann) for ann in self._buffer]

    def copy(self, ids: Iterable[str], store: AnnotationStore) -> int:
        """
        Replace the buffer with copies of the named annotations.

        Ids missing from the store are skipped. Buffer order follows the
        store's z-order.

        Returns:
            Number of annotations copied
        """
        wanted = set(ids)
        self._buffer = [ann for ann in store.list() if ann.id in wanted]
        if self.mirror_to_system and self._buffer:
            self._mirror()
        return len(self._buffer)

    def paste(self, t: float) -> List[Annotation]:
        """
        Build fresh annotations from the buffer, starting at time t.

        Every field other than id and timestamp is copied verbatim, so the
        pasted annotations sit exactly on top of the originals.
        """
        return [
            dataclasses.replace(
                copy.deepcopy(ann),
                id=new_id(ID_PREFIXES[ann.annotation_type]),
                timestamp=t,
            )
            for ann in self._buffer
        ]

    def clear(self) -> None:
        self._buffer = []

    def _mirror(self) -> None:
        text = json.dumps([ann.to_dict() for ann in self._buffer], indent=2)
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            logger.warning("Could not copy annotations to system clipboard: %s", e)

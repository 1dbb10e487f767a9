"""
In-memory rule collection with the editor's operations.

Definitions are grouped into libraries by parent context. Definition Id is the
identity: updating a definition under a different parent context moves it to
the matching library (created if needed), and a library emptied by a move or a
delete is dropped.
"""

from __future__ import annotations

import copy
import uuid
from typing import List, Optional, Tuple

from .models import Context, DefinitionId, RuleLibrary, TagDefinition, same_context


class RuleCollection:
    def __init__(self, libraries: Optional[List[RuleLibrary]] = None):
        self._libraries: List[RuleLibrary] = copy.deepcopy(libraries or [])

    @property
    def libraries(self) -> List[RuleLibrary]:
        """Snapshot, safe to hand to the analyzer while editing continues."""
        return copy.deepcopy(self._libraries)

    def definitions(self) -> List[TagDefinition]:
        return [d for lib in self._libraries for d in lib.definitions]

    def find(self, definition_id: DefinitionId) -> Optional[Tuple[RuleLibrary, TagDefinition]]:
        for lib in self._libraries:
            for d in lib.definitions:
                if d.id == definition_id:
                    return lib, d
        return None

    def _library_for(self, parent_context: Context) -> RuleLibrary:
        for lib in self._libraries:
            if same_context(lib.context, parent_context):
                return lib
        lib = RuleLibrary(context=list(parent_context), definitions=[], id=str(uuid.uuid4()))
        self._libraries.append(lib)
        return lib

    def _drop_empty(self) -> None:
        self._libraries = [lib for lib in self._libraries if lib.definitions]

    def add_definition(self, parent_context: Context, definition: TagDefinition) -> RuleLibrary:
        if self.find(definition.id) is not None:
            raise ValueError(f"Definition already exists: {definition.id}")
        lib = self._library_for(parent_context)
        lib.definitions.append(definition)
        return lib

    def update_definition(self, parent_context: Context, definition: TagDefinition) -> RuleLibrary:
        found = self.find(definition.id)
        if found is None:
            raise KeyError(f"Unknown definition: {definition.id}")
        current_lib, current = found

        if same_context(current_lib.context, parent_context):
            idx = current_lib.definitions.index(current)
            current_lib.definitions[idx] = definition
            return current_lib

        # Moved to another parent context
        current_lib.definitions.remove(current)
        target = self._library_for(parent_context)
        target.definitions.append(definition)
        self._drop_empty()
        return target

    def delete_definition(self, definition_id: DefinitionId) -> TagDefinition:
        found = self.find(definition_id)
        if found is None:
            raise KeyError(f"Unknown definition: {definition_id}")
        lib, definition = found
        lib.definitions.remove(definition)
        self._drop_empty()
        return definition

    def import_libraries(self, libraries: List[RuleLibrary]) -> int:
        """Upsert every imported definition by Id. Returns the number imported."""
        count = 0
        for imported in libraries:
            for definition in imported.definitions:
                if self.find(definition.id) is None:
                    self.add_definition(imported.context, copy.deepcopy(definition))
                else:
                    self.update_definition(imported.context, copy.deepcopy(definition))
                count += 1
        return count

    def export_definition(self, definition_id: DefinitionId) -> List[RuleLibrary]:
        """One definition re-wrapped in its parent library's context."""
        found = self.find(definition_id)
        if found is None:
            raise KeyError(f"Unknown definition: {definition_id}")
        lib, definition = found
        return [
            RuleLibrary(
                context=list(lib.context),
                definitions=[copy.deepcopy(definition)],
                id=lib.id,
            )
        ]

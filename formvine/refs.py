# Copyright (c) 2025 The formvine authors. MIT LICENSE.
#
# Formvine Refs
# =============
#
# The refs store is the side table of a compiled schema. Compiled
# nodes are plain JSON-like data, so anything that cannot be
# represented as data (rule validations, parse and transform
# callbacks, union predicates, fallbacks) is tracked here and
# referenced from the nodes by id.


from typing import *


S_REFPRE = 'ref://'


class RefsStore:
    """
    Mapping of ref ids to runtime callbacks, scoped to one compile.
    Ids increase monotonically and are never handed out twice.
    """

    def __init__(self) -> None:
        self._refs: Dict[str, Any] = {}
        self._counter = 0

    def track(self, callback: Any) -> str:
        "Store a callback and return its id."
        self._counter += 1
        ref_id = S_REFPRE + str(self._counter)
        self._refs[ref_id] = callback
        return ref_id

    def get(self, ref_id: str) -> Any:
        "Resolve an id. Unknown ids are a programming error."
        try:
            return self._refs[ref_id]
        except KeyError:
            raise KeyError(f'Cannot resolve ref "{ref_id}". '
                           'The compiled schema and refs store are out of sync') from None

    def __contains__(self, ref_id: Any) -> bool:
        return ref_id in self._refs

    def __len__(self) -> int:
        return len(self._refs)

    def to_json(self) -> Dict[str, str]:
        "Describe the store without exposing the callbacks themselves."
        return {
            ref_id: getattr(ref, 'name', None) or getattr(ref, '__name__', type(ref).__name__)
            for ref_id, ref in self._refs.items()
        }


__all__ = [
    'RefsStore',
]

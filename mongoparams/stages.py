"""
Aggregation pipeline stages.

Every stage is a tagged object: its `kind` tells what the stage does, and its `payload` is the value
that goes under the `$operator` key when the pipeline is sent to the database.

    MatchStage({'age': {'$gte': 18}}).to_dict()  # -> {'$match': {'age': {'$gte': 18}}}

Raw stage dicts given by the user are recognized by their operator:

    Stage.from_value({'$sort': {'age': -1}})  # -> SortStage({'age': -1})
    Stage.from_value({'$group': {...}})  # -> CustomStage({'$group': {...}})
"""

from copy import deepcopy
from typing import *


class Stage:
    """ A single pipeline stage """

    __slots__ = ('payload',)

    #: Stage kind
    kind = None

    #: The aggregation operator of this stage
    operator = None

    def __init__(self, payload):
        self.payload = payload

    @classmethod
    def from_value(cls, value) -> 'Stage':
        """ Make a Stage from a raw stage dict, unless it's a Stage already.

            Dicts with a single known operator become typed stages; anything else is a CustomStage.
        """
        if isinstance(value, Stage):
            return value
        if isinstance(value, Mapping) and len(value) == 1:
            (operator, payload), = value.items()
            stage_cls = STAGE_CLASSES.get(operator)
            if stage_cls is not None:
                return stage_cls(payload)
        return CustomStage(value)

    def to_dict(self) -> dict:
        """ The stage as the database wants it """
        return {self.operator: self.payload}

    def clone(self) -> 'Stage':
        """ Deep copy: the clone shares nothing with the original """
        return self.__class__(deepcopy(self.payload))

    def __eq__(self, other):
        return isinstance(other, Stage) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self.payload)


class MatchStage(Stage):
    kind = 'match'
    operator = '$match'

    __slots__ = ()

    def merge(self, criteria: Mapping):
        """ Shallow merge: keys from `criteria` overwrite existing keys """
        self.payload = {**self.payload, **criteria}
        return self


class SortStage(Stage):
    kind = 'sort'
    operator = '$sort'

    __slots__ = ()


class SkipStage(Stage):
    kind = 'skip'
    operator = '$skip'

    __slots__ = ()


class LimitStage(Stage):
    kind = 'limit'
    operator = '$limit'

    __slots__ = ()


class ProjectStage(Stage):
    kind = 'project'
    operator = '$project'

    __slots__ = ()


class LookupStage(Stage):
    kind = 'lookup'
    operator = '$lookup'

    __slots__ = ()


class CountStage(Stage):
    kind = 'count'
    operator = '$count'

    __slots__ = ()


class CustomStage(Stage):
    """ Any other stage. The payload is the complete stage dict. """

    kind = 'custom'

    __slots__ = ()

    def to_dict(self):
        return self.payload


STAGE_CLASSES = {stage_cls.operator: stage_cls
                 for stage_cls in (MatchStage, SortStage, SkipStage, LimitStage,
                                   ProjectStage, LookupStage, CountStage)}


class Pipeline:
    """ An ordered sequence of stages

        This is a mutable container: query builders edit it in place while the fluent chain is being built.
        Use clone() to make a variant that won't affect the original.
    """

    __slots__ = ('_stages',)

    def __init__(self, stages: Iterable = ()):
        self._stages = [Stage.from_value(stage) for stage in stages]

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self):
        return len(self._stages)

    def __getitem__(self, index) -> Stage:
        return self._stages[index]

    def __repr__(self):
        return 'Pipeline({!r})'.format(self._stages)

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return tuple(self._stages)

    def index(self, kind: str) -> int:
        """ Position of the first stage of the given kind, or -1 """
        for i, stage in enumerate(self._stages):
            if stage.kind == kind:
                return i
        return -1

    def find(self, kind: str) -> Optional[Stage]:
        """ The first stage of the given kind, if any """
        i = self.index(kind)
        return self._stages[i] if i >= 0 else None

    def append(self, *stages):
        self._stages.extend(Stage.from_value(stage) for stage in stages)
        return self

    def insert(self, position: int, *stages):
        """ Insert stages at the given position, keeping their order """
        self._stages[position:position] = [Stage.from_value(stage) for stage in stages]
        return self

    def remove(self, *kinds: str):
        """ Remove all stages of the given kinds """
        self._stages = [stage for stage in self._stages if stage.kind not in kinds]
        return self

    def replace(self, stages: Iterable):
        """ Replace all stages """
        self._stages = [Stage.from_value(stage) for stage in stages]
        return self

    def merge_match(self, criteria: Mapping):
        """ Merge criteria into the first $match stage, or add a new one at the head of the pipeline """
        match = self.find(MatchStage.kind)
        if match is not None:
            match.merge(criteria)
        else:
            self.insert(0, MatchStage(dict(criteria)))
        return self

    def default_insert_position(self) -> int:
        """ Where custom stages go by default: before any $sort, $skip, $limit, $project

            Filtering and transforming stages have to come before sorting, pagination and projection.
        """
        positions = [self.index(kind)
                     for kind in (SortStage.kind, SkipStage.kind, LimitStage.kind, ProjectStage.kind)]
        return min([i for i in positions if i >= 0], default=len(self._stages))

    def clone(self, exclude: Iterable[str] = ()) -> 'Pipeline':
        """ Deep copy the pipeline, dropping stages of the given kinds """
        exclude = frozenset(exclude)
        return Pipeline(stage.clone()
                        for stage in self._stages
                        if stage.kind not in exclude)

    def compile(self) -> List[dict]:
        """ The pipeline as the database wants it """
        return [stage.to_dict() for stage in self._stages]

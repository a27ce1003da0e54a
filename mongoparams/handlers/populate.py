"""
### Populate

Documents often reference other documents by id: an article has an `author` id, a list of `tags` ids.
Populate replaces those references with the referenced documents.

#### Syntax

* String syntax.

    Paths to populate, separated by whitespace or commas:

    ```python
    query.populate('author tags')
    ```

    The target collection of every path comes from the `references` setting: `{'author': 'users'}`.

* Object syntax.

    A descriptor, or a list of descriptors, that can select fields, filter, and populate further:

    ```python
    query.populate([
        {
            'path': 'author',
            'collection': 'users',  # target collection; optional with `references`
            'select': 'name,email',  # projection, same syntax as `fields`
            'match': {'is_active': True},  # only populate these
            'populate': {'path': 'company', 'collection': 'companies'},  # nested
        },
        'tags',
    ])
    ```

#### Result

The two query builders produce different shapes:

* MongoQuery loads referenced documents with a separate query per path.
  A single reference becomes a document, or `None` when it's not found or filtered out by `match`;
  a list of references becomes a list of documents. Documents are never dropped because of populate.
* AggregationQuery uses `$lookup`, so the populated field is *always* a list,
  even when the reference was a single id.
"""

import asyncio
from collections.abc import Mapping

from .base import ParamsHandlerBase
from .project import compile_projection
from ..exc import InvalidQueryError
from ..stages import LookupStage


class MongoPopulate(ParamsHandlerBase):
    """ Populate references

        Supports the following arguments:

        - String: 'author tags'
        - Dict: { path, collection, select, match, populate }
        - List of those
    """

    query_param_name = 'populate'

    #: Descriptor keys
    DESCRIPTOR_KEYS = frozenset(('path', 'collection', 'select', 'match', 'populate'))

    def __init__(self, params, settings=None):
        super(MongoPopulate, self).__init__(params, settings)

        # On input
        # type: list[PopulateParams]
        self.populate_params = []

    def input(self, spec=None):
        """ Parse a populate spec

        :raises InvalidQueryError: invalid descriptor, or unknown target collection
        """
        super(MongoPopulate, self).input()
        self.populate_params = self._parse(spec)
        return self

    def merge(self, spec):
        """ Add more paths. A path that's already there is replaced. """
        new = {p.path: p for p in self._parse(spec)}
        self.populate_params = [new.pop(p.path, p) for p in self.populate_params] + list(new.values())
        return self

    def _parse(self, spec):
        """ Parse any populate spec into a list of PopulateParams """
        if not spec:
            return []
        if isinstance(spec, (str, Mapping)):
            spec = [spec]
        if not isinstance(spec, (list, tuple)):
            raise InvalidQueryError('populate must be either a string, an object, or a list; {} provided'
                                    .format(type(spec).__name__))

        ret = []
        for item in spec:
            if isinstance(item, PopulateParams):
                ret.append(item)
            elif isinstance(item, str):
                ret.extend(self._make_params(path=path)
                           for path in item.replace(',', ' ').split())
            elif isinstance(item, Mapping):
                invalid_keys = set(item) - self.DESCRIPTOR_KEYS
                if invalid_keys:
                    raise InvalidQueryError('Unknown populate keys: {}'.format(', '.join(sorted(invalid_keys))))
                ret.append(self._make_params(**item))
            else:
                raise InvalidQueryError('populate items must be strings or objects; {} provided'
                                        .format(type(item).__name__))
        return ret

    def _make_params(self, path=None, collection=None, select=None, match=None, populate=None):
        if not path or not isinstance(path, str):
            raise InvalidQueryError('populate: `path` is required')

        collection = collection or self.settings['references'].get(path)
        if not collection:
            raise InvalidQueryError('populate: unknown collection for path "{}"'.format(path))

        if match is not None and not isinstance(match, Mapping):
            raise InvalidQueryError('populate: `match` must be an object')

        return PopulateParams(
            path=path,
            collection=collection,
            select=compile_projection(select) if select else None,
            match=dict(match) if match else None,
            populate=self._parse(populate),
        )

    def is_input_empty(self):
        return not self.populate_params

    def get_final_input_value(self):
        return [p.to_dict() for p in self.populate_params]

    # region AggregationQuery: $lookup

    def compile_stages(self):
        """ Compile $lookup stages for every path

        :rtype: list[LookupStage]
        """
        return [self._compile_lookup(p) for p in self.populate_params]

    @classmethod
    def _compile_lookup(cls, p):
        """ A $lookup stage with a sub-pipeline for match, nested lookups, select """
        sub_pipeline = []
        if p.match:
            sub_pipeline.append({'$match': dict(p.match)})
        sub_pipeline.extend(cls._compile_lookup(nested).to_dict() for nested in p.populate)
        if p.select:
            sub_pipeline.append({'$project': dict(p.select)})

        lookup = {
            'from': p.collection,
            'localField': p.path,
            'foreignField': '_id',
            'as': p.path,
        }
        if sub_pipeline:
            lookup['pipeline'] = sub_pipeline
        return LookupStage(lookup)

    # endregion

    # region MongoQuery: separate queries

    async def load(self, database, documents):
        """ Replace references in `documents` with the referenced documents

        Documents are modified in place.

        :param database: The database to find target collections in
        :type database: motor.motor_asyncio.AsyncIOMotorDatabase
        :param documents: The documents to populate
        :type documents: list[dict]
        :rtype: list[dict]
        """
        await self._load_many(database, documents, self.populate_params)
        return documents

    @classmethod
    async def _load_many(cls, database, documents, populate_params):
        if documents and populate_params:
            await asyncio.gather(*(cls._load_one(database, documents, p)
                                   for p in populate_params))

    @classmethod
    async def _load_one(cls, database, documents, p):
        """ Populate a single path in all documents """
        # Collect references
        ids = []
        for doc in documents:
            value = get_path(doc, p.path)
            for ref in (value if isinstance(value, list) else [value]):
                if ref is not MISSING and ref is not None and ref not in ids:
                    ids.append(ref)

        # We need `_id` to put the documents in their places
        projection = dict(p.select) if p.select else None
        hide_id = projection is not None and not projection.get('_id', 1)
        if hide_id:
            del projection['_id']

        # Load
        related = []
        if ids:
            criteria = {'_id': {'$in': ids}}
            if p.match:
                criteria = {'$and': [criteria, p.match]}
            related = await database[p.collection].find(criteria, projection or None).to_list(length=None)

        # Go deeper
        await cls._load_many(database, related, p.populate)

        # Put them in place
        related_by_id = {doc['_id']: doc for doc in related}
        for doc in documents:
            value = get_path(doc, p.path)
            if value is MISSING:
                continue
            if isinstance(value, list):
                set_path(doc, p.path, [related_by_id[ref] for ref in value if ref in related_by_id])
            else:
                set_path(doc, p.path, related_by_id.get(value))

        if hide_id:
            for doc in related:
                doc.pop('_id', None)

    # endregion


class PopulateParams:
    """ All the information necessary to populate a single path

        This object is used by both query builders: for $lookup, and for separate queries.
    """

    __slots__ = ('path', 'collection', 'select', 'match', 'populate')

    def __init__(self, path, collection, select=None, match=None, populate=()):
        """ Values for populate

        :param path: The field that holds the reference(s)
        :type path: str
        :param collection: Target collection name
        :type collection: str
        :param select: Projection for the populated documents
        :type select: dict | None
        :param match: Criteria for the populated documents
        :type match: dict | None
        :param populate: Nested populate
        :type populate: list[PopulateParams]
        """
        self.path = path
        self.collection = collection
        self.select = select
        self.match = match
        self.populate = list(populate or ())

    def to_dict(self):
        ret = dict(path=self.path, collection=self.collection)
        if self.select:
            ret['select'] = self.select
        if self.match:
            ret['match'] = self.match
        if self.populate:
            ret['populate'] = [p.to_dict() for p in self.populate]
        return ret

    def __repr__(self):
        return '<PopulateParams(' \
               'path={0.path!r}, ' \
               'collection={0.collection!r}, ' \
               'select={0.select!r}, ' \
               'match={0.match!r}, ' \
               'populate={0.populate!r}' \
               ')>'.format(self)


# region Path helpers

#: A field that's not there
MISSING = object()


def get_path(doc, path):
    """ Get a value by a dotted path, or MISSING """
    for key in path.split('.'):
        if not isinstance(doc, Mapping) or key not in doc:
            return MISSING
        doc = doc[key]
    return doc


def set_path(doc, path, value):
    """ Set a value by a dotted path. The parents must exist. """
    *parents, last = path.split('.')
    for key in parents:
        doc = doc[key]
    doc[last] = value

# endregion

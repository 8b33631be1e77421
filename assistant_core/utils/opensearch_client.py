"""
OpenSearch client wrapper for vector similarity search and metadata filtering.
"""

import time
from typing import Any, Dict, List, Optional

import boto3
from opensearchpy import OpenSearch, RequestsHttpConnection, helpers
from opensearchpy.exceptions import OpenSearchException
from requests_aws4auth import AWS4Auth

from ..models.core import VectorMatch, VectorRecord
from .config import OpenSearchConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class OpenSearchError(Exception):
    """Custom exception for OpenSearch errors."""
    pass


class VectorDimensionError(OpenSearchError):
    """Raised when a vector does not match the index dimensionality."""
    pass


class OpenSearchClient:
    """OpenSearch client with AWS authentication and error handling.

    All record types (knowledge, conversation, profile) share one index and are
    told apart by the ``type`` keyword field. Writes are addressed by record id,
    so writing an existing id overwrites it.
    """

    def __init__(self, config: OpenSearchConfig):
        """
        Initialize OpenSearch client.

        Args:
            config: OpenSearchConfig instance with connection parameters

        Raises:
            OpenSearchError: If no AWS credentials are available or the client cannot be built
        """
        self.config = config
        self.index_name = config.index_name
        self.dimension = config.dimension

        endpoint = config.endpoint
        if '://' in endpoint:
            # Remove protocol if present
            endpoint = endpoint.split('://', 1)[1]

        try:
            credentials = boto3.Session().get_credentials()
            if credentials is None:
                raise OpenSearchError('No AWS credentials available for OpenSearch')

            auth = AWS4Auth(region=config.region, service='aoss', refreshable_credentials=credentials)
            self.client = OpenSearch(hosts=[{
                'host': endpoint,
                'port': config.port
            }],
                                     http_auth=auth,
                                     use_ssl=True,
                                     verify_certs=True,
                                     connection_class=RequestsHttpConnection)
        except OpenSearchError:
            raise
        except Exception as e:
            logger.error(f'Failed to build OpenSearch client for {config.endpoint}: {e}')
            raise OpenSearchError(f'Failed to build OpenSearch client: {e}')

        logger.info(f'Initialized OpenSearch client for endpoint: {config.endpoint}')

    def create_index_if_not_exists(self) -> str:
        """
        Create the shared index if it doesn't exist.

        Returns:
            'exists', 'created' or 'failed'
        """
        try:
            if self.client.indices.exists(index=self.index_name):
                logger.debug(f'Index {self.index_name} already exists')
                return 'exists'

            index_body = {
                'mappings': {
                    'properties': {
                        'content': {'type': 'text'},
                        'role': {'type': 'keyword'},
                        'sessionId': {'type': 'keyword'},
                        'type': {'type': 'keyword'},
                        'profileKey': {'type': 'keyword'},
                        'profileValue': {'type': 'keyword'},
                        'source': {'type': 'keyword'},
                        'hasPortfolio': {'type': 'boolean'},
                        'hasProcess': {'type': 'boolean'},
                        'hasPricing': {'type': 'boolean'},
                        'hasServices': {'type': 'boolean'},
                        'timestamp': {'type': 'long'},
                        'embedding': {
                            'type': 'knn_vector',
                            'dimension': self.dimension,
                            'method': {
                                'name': 'hnsw',
                                'space_type': 'cosinesimil',
                                'engine': 'lucene'
                            }
                        }
                    }
                },
                'settings': {
                    'index': {
                        'knn': True,
                        'knn.algo_param.ef_search': 100
                    }
                }
            }

            response = self.client.indices.create(index=self.index_name, body=index_body)
            logger.info(f'Created index {self.index_name}')
            if response.get('acknowledged', False):
                logger.info(f'Waiting 15s for index {self.index_name} sync-up...')
                time.sleep(15)
                return 'created'
            return 'failed'
        except OpenSearchException as e:
            logger.error(f'Error creating index {self.index_name}: {e}')
            raise OpenSearchError(f'Failed to create index: {e}')
        except Exception as e:
            logger.error(f'Unexpected error creating index {self.index_name}: {e}')
            raise OpenSearchError(f'Unexpected error creating index: {e}')

    def _check_dimension(self, vector: List[float], record_id: str = 'query') -> None:
        if len(vector) != self.dimension:
            raise VectorDimensionError(f'Vector for {record_id} has {len(vector)} dimensions, '
                                       f'index {self.index_name} expects {self.dimension}')

    @staticmethod
    def _term_filters(filters: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [{'term': {field: value}} for field, value in (filters or {}).items()]

    @staticmethod
    def _to_cosine(score: float) -> float:
        # lucene cosinesimil hits are scored (1 + cos) / 2
        return 2.0 * score - 1.0

    def upsert_records(self, records: List[VectorRecord]) -> int:
        """
        Write records, overwriting any existing record with the same id.

        Args:
            records: Records to write; every vector must match the index dimension

        Returns:
            Number of records written

        Raises:
            VectorDimensionError: If any vector has the wrong dimensionality (nothing is written)
            OpenSearchError: If the bulk write fails
        """
        if not records:
            return 0

        for record in records:
            self._check_dimension(record.vector, record.id)

        actions = [{
            '_op_type': 'index',
            '_index': self.index_name,
            '_id': record.id,
            '_source': {
                **record.metadata, 'embedding': record.vector
            }
        } for record in records]

        try:
            written, _ = helpers.bulk(self.client, actions)
            logger.debug(f'Upserted {written} records into {self.index_name}')
            return written
        except OpenSearchException as e:
            logger.error(f'Error upserting records: {e}')
            raise OpenSearchError(f'Failed to upsert records: {e}')
        except Exception as e:
            logger.error(f'Unexpected error upserting records: {e}')
            raise OpenSearchError(f'Unexpected error upserting records: {e}')

    def query(self, vector: List[float], top_k: int = 5, filters: Optional[Dict[str, Any]] = None) -> List[VectorMatch]:
        """
        Perform k-NN similarity search restricted by exact-match metadata filters.

        The filter is applied inside the k-NN clause, so the ``top_k`` nearest
        neighbours are chosen among matching records only.

        Args:
            vector: Query vector
            top_k: Number of results to return
            filters: Field/value pairs every hit must match exactly

        Returns:
            Matches ordered by cosine similarity, descending
        """
        self._check_dimension(vector)

        knn_query: Dict[str, Any] = {'vector': vector, 'k': top_k}
        if filters:
            knn_query['filter'] = {'bool': {'filter': self._term_filters(filters)}}

        search_body = {
            'size': top_k,
            'query': {
                'knn': {
                    'embedding': knn_query
                }
            },
            '_source': {
                'excludes': ['embedding']  # Don't return embedding in results
            }
        }

        try:
            response = self.client.search(index=self.index_name, body=search_body)
            matches = [
                VectorMatch(id=hit['_id'], score=self._to_cosine(hit['_score']), metadata=hit['_source'])
                for hit in response['hits']['hits']
            ]
            logger.debug(f'Vector search returned {len(matches)} matches for filters {filters}')
            return matches

        except OpenSearchException as e:
            logger.error(f'Error performing vector search: {e}')
            raise OpenSearchError(f'Vector search failed: {e}')
        except Exception as e:
            logger.error(f'Unexpected error in vector search: {e}')
            raise OpenSearchError(f'Unexpected error in vector search: {e}')

    def filter_query(self,
                     filters: Dict[str, Any],
                     top_k: int = 10,
                     sort_field: Optional[str] = None,
                     descending: bool = True) -> List[VectorMatch]:
        """
        Fetch records by metadata alone, without a similarity vector.

        Args:
            filters: Field/value pairs every hit must match exactly
            top_k: Maximum number of results to return
            sort_field: Optional field to sort on server-side
            descending: Sort direction when sort_field is given

        Returns:
            Matching records; score is always 0.0
        """
        search_body = {
            'size': top_k,
            'query': {
                'bool': {
                    'filter': self._term_filters(filters)
                }
            },
            '_source': {
                'excludes': ['embedding']
            }
        }
        if sort_field:
            search_body['sort'] = [{sort_field: {'order': 'desc' if descending else 'asc'}}]

        try:
            response = self.client.search(index=self.index_name, body=search_body)
            matches = [VectorMatch(id=hit['_id'], score=0.0, metadata=hit['_source']) for hit in response['hits']['hits']]
            logger.debug(f'Filter query returned {len(matches)} records for filters {filters}')
            return matches

        except OpenSearchException as e:
            logger.error(f'Error performing filter query: {e}')
            raise OpenSearchError(f'Filter query failed: {e}')
        except Exception as e:
            logger.error(f'Unexpected error in filter query: {e}')
            raise OpenSearchError(f'Unexpected error in filter query: {e}')

    def health_check(self) -> bool:
        """
        Perform a health check on the OpenSearch service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response = self.client.indices.exists(index=self.index_name)

            return response in [True, False]

        except Exception as e:
            logger.error(f'OpenSearch health check failed: {e}')
            return False

"""DDL services that translate definitions into PostgreSQL statements."""

from .base import BaseMatViewService, MatViewServicePort, service_describe_database_error
from .catalog import MatViewGrantSpec, MatViewIndexSpec
from .check_exists import CheckMatViewExistsService
from .concurrent_refresh import TRANSACTION_BLOCK_MESSAGE, ConcurrentRefreshService
from .create_view import CreateViewService
from .delete_view import DeleteViewService
from .factory import MatViewServiceFactory
from .regular_refresh import RegularRefreshService
from .swap_refresh import SwapRefreshService

__all__ = [
	"BaseMatViewService",
	"MatViewServicePort",
	"service_describe_database_error",
	"MatViewGrantSpec",
	"MatViewIndexSpec",
	"CheckMatViewExistsService",
	"TRANSACTION_BLOCK_MESSAGE",
	"ConcurrentRefreshService",
	"CreateViewService",
	"DeleteViewService",
	"MatViewServiceFactory",
	"RegularRefreshService",
	"SwapRefreshService",
]

"""
GraphQL Extensions

Custom extensions for per-operation loader scope, performance monitoring
and error logging.
"""

import time

from strawberry.extensions import SchemaExtension

from eventflow.utils.logger import get_logger

from .context import GraphQLContext

logger = get_logger(__name__)

SLOW_OPERATION_SECONDS = 1.0


class PerformanceMonitoringExtension(SchemaExtension):
    """
    Extension to monitor GraphQL operation performance.

    Logs execution time and operation name.
    """

    def on_operation(self):
        start_time = time.time()

        operation = self.execution_context.operation_name
        query = self.execution_context.query or ''

        if operation:
            logger.info(f"🔍 GraphQL operation started: {operation}")
        else:
            # Log first 100 chars of query if no operation name
            query_preview = query[:100] + "..." if len(query) > 100 else query
            logger.debug(f"🔍 GraphQL operation: {query_preview}")

        yield

        execution_time = time.time() - start_time
        operation = self.execution_context.operation_name or 'anonymous'

        if execution_time > SLOW_OPERATION_SECONDS:
            logger.warning(
                f"⚠️  Slow GraphQL operation: {operation} "
                f"took {execution_time:.2f}s"
            )
        else:
            logger.info(
                f"✅ GraphQL operation completed: {operation} "
                f"in {execution_time*1000:.0f}ms"
            )


class ErrorLoggingExtension(SchemaExtension):
    """
    Extension to log GraphQL errors with context.
    """

    def on_operation(self):
        yield

        result = self.execution_context.result
        errors = getattr(result, 'errors', None)
        if not errors:
            return

        operation = self.execution_context.operation_name or 'anonymous'
        for error in errors:
            code = (error.extensions or {}).get('code', 'INTERNAL_SERVER_ERROR')
            logger.error(f"❌ GraphQL error in {operation} [{code}]: {error.message}")

            if error.path:
                logger.error(f"   Path: {' → '.join(str(p) for p in error.path)}")

            if error.locations:
                for loc in error.locations:
                    logger.error(f"   Location: line {loc.line}, column {loc.column}")


class LoaderScopeExtension(SchemaExtension):
    """
    Start every operation with an empty DataLoader set.

    HTTP requests get a new context each time, but a WebSocket connection
    builds its context once and runs every operation it carries on it.
    """

    def on_operation(self):
        context = self.execution_context.context
        if isinstance(context, GraphQLContext):
            context.refresh_loaders()
        yield

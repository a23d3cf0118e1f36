"""
DDL generation for mapped tables: create, drop and truncate.
"""
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recordmap.mapping import ColumnMap, TableMap

logger = logging.getLogger(__name__)


def _column_definition(table: 'TableMap', col: 'ColumnMap') -> str:
    dialect = table.dialect
    sql_type = dialect.to_sql_type(col.py_type, col.max_size, col.is_auto_incr)
    parts = [dialect.quote_field(col.column_name), sql_type]
    if col.is_pk or col.is_not_null:
        parts.append('not null')
    if col.is_pk and len(table.keys) == 1:
        parts.append('primary key')
        # autoincrement must directly follow primary key in sqlite
        if col.is_auto_incr and dialect.auto_incr_str():
            parts.append(dialect.auto_incr_str())
    if col.unique:
        parts.append('unique')
    if col.references is not None:
        parts.append(_references_clause(table, col))
    return ' '.join(parts)


def _references_clause(table: 'TableMap', col: 'ColumnMap') -> str:
    dialect = table.dialect
    fk = col.references
    clause = f'references {dialect.quote_field(fk.table)}({dialect.quote_field(fk.column)})'
    if fk.on_delete is not None:
        clause += f' on delete {fk.on_delete.value}'
    if fk.on_update is not None:
        clause += f' on update {fk.on_update.value}'
    return clause


def create_table_sql(table: 'TableMap', if_not_exists: bool = False) -> list[str]:
    """Statements creating the table, preceded by its schema when it has one.

    Raises
        DialectConfigError: the dialect lacks settings needed for CREATE TABLE
    """
    dialect = table.dialect
    statements = []
    if table.schema_name.strip():
        schema_sql = dialect.create_schema_sql(table.schema_name, if_not_exists)
        if schema_sql:
            statements.append(schema_sql)

    definitions = [_column_definition(table, col) for col in table.columns if not col.transient]
    if len(table.keys) > 1:
        names = ', '.join(dialect.quote_field(col.column_name) for col in table.keys)
        definitions.append(f'primary key ({names})')
    for group in table.unique_together:
        names = ', '.join(dialect.quote_field(name) for name in group)
        definitions.append(f'unique ({names})')

    create = 'create table if not exists' if if_not_exists else 'create table'
    statements.append(f'{create} {table.quoted_name()} ({", ".join(definitions)})'
                      f'{dialect.create_table_suffix()}{dialect.query_suffix()}')
    return statements


def drop_table_sql(table: 'TableMap', if_exists: bool = False) -> str:
    drop = 'drop table if exists' if if_exists else 'drop table'
    return f'{drop} {table.quoted_name()}{table.dialect.query_suffix()}'


def truncate_table_sql(table: 'TableMap') -> str:
    dialect = table.dialect
    return f'{dialect.truncate_clause()} {table.quoted_name()}{dialect.query_suffix()}'

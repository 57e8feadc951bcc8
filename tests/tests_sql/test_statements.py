"""
========================================================
Pytest suite for txsql/sql/statements.py and union.py
========================================================

Sections:
---------
1. Unit tests - WITH prefixing, RETURNING gating, ON CONFLICT, routing to
   the bound or literal execution path
2. Edge case tests - load() without RETURNING, empty unions

Statements run against a FakeRunner that records which execution path was
taken; nothing here touches a database.

How to Execute:
---------------
All tests:          pytest tests/tests_sql/test_statements.py -v
"""

import pytest

from txsql.errors import BuildError
from txsql.result import Result
from txsql.sql.fragments import do_nothing, do_update, expr, parens, values
from txsql.sql.query_builder import (
    DeleteBuilder,
    InsertBuilder,
    SelectBuilder,
    UpdateBuilder,
)
from txsql.sql.statements import DeleteStmt, InsertStmt, SelectStmt, UpdateStmt
from txsql.sql.union import UnionStmt

WITH_UPDATE_SQL = (
    "WITH v(id,value) AS (VALUES (1,'v_1'),(2,'v_2')) "
    "UPDATE \"t\" SET \"value\" = (SELECT value FROM v WHERE (v.id = t.id)) "
    "WHERE (t.id in (SELECT id FROM v))"
)


def make_with_update(runner):
    with_clauses = [('v(id,value)', values(1, 'v_1').values(2, 'v_2'))]
    return (
        UpdateStmt(runner, UpdateBuilder('t'), with_clauses)
        .set('value', parens(SelectBuilder('value').from_('v').where('v.id = t.id')))
        .where('t.id in ?', SelectBuilder('id').from_('v'))
    )


# ===============
# 1. UNIT TESTS
# ===============

@pytest.mark.unit
def test_chained_calls_return_the_statement(fake_runner_factory, sqlite_dialect):
    stmt = SelectStmt(fake_runner_factory(sqlite_dialect), SelectBuilder('id'))

    assert stmt.from_('t').where('id = ?', 1) is stmt
    assert stmt.to_sql() == ('SELECT id FROM t WHERE (id = ?)', [1])


@pytest.mark.unit
def test_select_with_clauses_prefix(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect)
    with_clauses = [('a', SelectBuilder('1')), ('b(x)', values(2))]
    stmt = SelectStmt(runner, SelectBuilder('*').from_('a, b'), with_clauses)

    assert stmt.interpolate() == 'WITH a AS (SELECT 1), b(x) AS (VALUES (2)) SELECT * FROM a, b'


@pytest.mark.unit
def test_select_load_helpers(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect, rows=[(1, 'a'), (2, 'b')])
    stmt = SelectStmt(runner, SelectBuilder('id', 'value').from_('t'))

    assert stmt.load() == [(1, 'a'), (2, 'b')]
    assert stmt.load_one() == (1, 'a')
    assert stmt.load_scalars() == [1, 2]
    assert stmt.load_scalar() == 1
    assert all(call[0] == 'load_builder' for call in runner.calls)


@pytest.mark.unit
def test_select_load_scalar_without_rows(fake_runner_factory, sqlite_dialect):
    stmt = SelectStmt(fake_runner_factory(sqlite_dialect), SelectBuilder('id').from_('t'))

    assert stmt.load_one() is None
    assert stmt.load_scalar() is None


@pytest.mark.unit
def test_update_with_clauses_run_as_literal_sql(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect)

    result = make_with_update(runner).exec()

    assert runner.calls == [('exec_raw', WITH_UPDATE_SQL)]
    assert result == Result(7, 1)


@pytest.mark.unit
def test_update_without_with_uses_bound_path(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect)
    stmt = UpdateStmt(runner, UpdateBuilder('t')).set('value', 'x').where('id = ?', 1)

    stmt.exec()

    assert runner.calls == [('exec_builder', stmt)]


@pytest.mark.unit
def test_insert_on_conflict_do_update(fake_runner_factory, sqlite_dialect):
    stmt = (
        InsertStmt(fake_runner_factory(sqlite_dialect), InsertBuilder('t'))
        .columns('c')
        .values(1)
        .on_conflict('c', do_update().set('c', expr('EXCLUDED.c')))
    )

    assert stmt.to_sql() == (
        'INSERT INTO "t" ("c") VALUES (?) ON CONFLICT ("c") DO UPDATE SET "c" = EXCLUDED.c', [1]
    )


@pytest.mark.unit
def test_insert_on_conflict_without_target(fake_runner_factory, sqlite_dialect):
    stmt = (
        InsertStmt(fake_runner_factory(sqlite_dialect), InsertBuilder('t'))
        .columns('c')
        .values(1)
        .on_conflict(None, do_nothing())
    )

    assert stmt.to_sql()[0] == 'INSERT INTO "t" ("c") VALUES (?) ON CONFLICT DO NOTHING'


@pytest.mark.unit
def test_insert_on_conflict_multi_column_target(fake_runner_factory, sqlite_dialect):
    stmt = (
        InsertStmt(fake_runner_factory(sqlite_dialect), InsertBuilder('t'))
        .columns('a', 'b')
        .values(1, 2)
        .on_conflict(['a', 'b'], do_nothing())
    )

    assert stmt.to_sql()[0] == 'INSERT INTO "t" ("a","b") VALUES (?,?) ON CONFLICT ("a","b") DO NOTHING'


@pytest.mark.unit
def test_insert_with_conflict_runs_as_literal_sql(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect)
    stmt = (
        InsertStmt(runner, InsertBuilder('t'))
        .columns('id', 'value')
        .values(1, "it's")
        .on_conflict('id', do_nothing())
    )

    stmt.exec()

    assert runner.calls == [
        ('exec_raw', 'INSERT INTO "t" ("id","value") VALUES (1,\'it\'\'s\') ON CONFLICT ("id") DO NOTHING')
    ]


@pytest.mark.unit
def test_returning_ignored_outside_postgres(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect)
    stmt = InsertStmt(runner, InsertBuilder('t')).columns('value').values('a').returning('id')

    result = stmt.exec()

    assert stmt.returning_columns == []
    assert stmt.to_sql()[0] == 'INSERT INTO "t" ("value") VALUES (?)'
    assert runner.calls == [('exec_builder', stmt)]
    assert result == Result(7, 1)


@pytest.mark.unit
def test_single_column_returning_reports_last_insert_id(fake_runner_factory, pg_dialect):
    runner = fake_runner_factory(pg_dialect, rows=[(42,)])
    stmt = InsertStmt(runner, InsertBuilder('t')).columns('value').values('a').returning('id')

    result = stmt.exec()

    assert stmt.to_sql()[0] == 'INSERT INTO "t" ("value") VALUES (?) RETURNING "id"'
    assert runner.calls == [('load_builder', stmt)]
    assert result == Result(last_insert_id=42, rows_affected=0)


@pytest.mark.unit
def test_returning_follows_on_conflict(fake_runner_factory, pg_dialect):
    stmt = (
        InsertStmt(fake_runner_factory(pg_dialect), InsertBuilder('t'))
        .columns('c')
        .values(1)
        .returning('id')
        .on_conflict('c', do_nothing())
    )

    assert stmt.to_sql()[0] == 'INSERT INTO "t" ("c") VALUES (?) ON CONFLICT ("c") DO NOTHING RETURNING "id"'


@pytest.mark.unit
def test_multi_column_returning_uses_bound_exec(fake_runner_factory, pg_dialect):
    runner = fake_runner_factory(pg_dialect)
    stmt = InsertStmt(runner, InsertBuilder('t')).columns('value').values('a').returning('id', 'value')

    stmt.exec()

    assert runner.calls == [('exec_builder', stmt)]


@pytest.mark.unit
def test_update_returning_on_postgres(fake_runner_factory, pg_dialect):
    runner = fake_runner_factory(pg_dialect, rows=[(1,)])
    stmt = UpdateStmt(runner, UpdateBuilder('t')).set('value', 'x').returning('id')

    assert stmt.to_sql()[0] == 'UPDATE "t" SET "value" = ? RETURNING "id"'
    assert stmt.load() == [(1,)]


@pytest.mark.unit
def test_delete_returning_gated(fake_runner_factory, pg_dialect, sqlite_dialect):
    pg_stmt = DeleteStmt(fake_runner_factory(pg_dialect), DeleteBuilder('t')).where('id = ?', 1).returning('id')
    lite_stmt = DeleteStmt(fake_runner_factory(sqlite_dialect), DeleteBuilder('t')).where('id = ?', 1).returning('id')

    assert pg_stmt.to_sql()[0] == 'DELETE FROM "t" WHERE (id = ?) RETURNING "id"'
    assert lite_stmt.to_sql()[0] == 'DELETE FROM "t" WHERE (id = ?)'


@pytest.mark.unit
def test_union_renders_and_loads_literal_sql(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect, rows=[(1,), (7,)])
    stmt = UnionStmt(runner, [
        SelectBuilder('id').from_('a').where('kind = ?', 'x'),
        SelectBuilder('id').from_('b'),
    ])

    assert stmt.interpolate() == "SELECT id FROM a WHERE (kind = 'x') UNION SELECT id FROM b"
    assert stmt.load_scalars() == [1, 7]
    assert runner.calls[-1] == ('load_raw', "SELECT id FROM a WHERE (kind = 'x') UNION SELECT id FROM b")


@pytest.mark.unit
def test_union_all(fake_runner_factory, sqlite_dialect):
    stmt = UnionStmt(fake_runner_factory(sqlite_dialect), [SelectBuilder('1'), SelectBuilder('2')], all=True)

    assert stmt.interpolate() == 'SELECT 1 UNION ALL SELECT 2'


@pytest.mark.unit
def test_union_as_named_source(fake_runner_factory, sqlite_dialect):
    runner = fake_runner_factory(sqlite_dialect)
    union = UnionStmt(runner, [SelectBuilder('1 AS n'), SelectBuilder('2 AS n')])
    stmt = SelectStmt(runner, SelectBuilder('sum(u.n)').from_(union.as_('u')))

    assert stmt.interpolate() == 'SELECT sum(u.n) FROM (SELECT 1 AS n UNION SELECT 2 AS n) AS "u"'


# ==================
# 2. EDGE CASE TESTS
# ==================

@pytest.mark.edge_case
def test_insert_load_requires_returning(fake_runner_factory, sqlite_dialect):
    stmt = InsertStmt(fake_runner_factory(sqlite_dialect), InsertBuilder('t')).columns('id').values(1)

    with pytest.raises(BuildError, match="requires RETURNING"):
        stmt.load()


@pytest.mark.edge_case
def test_update_load_requires_returning(fake_runner_factory, sqlite_dialect):
    stmt = UpdateStmt(fake_runner_factory(sqlite_dialect), UpdateBuilder('t')).set('value', 1).returning('id')

    with pytest.raises(BuildError, match="requires RETURNING"):
        stmt.load()


@pytest.mark.edge_case
def test_empty_union_raises(fake_runner_factory, sqlite_dialect):
    stmt = UnionStmt(fake_runner_factory(sqlite_dialect), [])

    with pytest.raises(BuildError, match="at least one statement"):
        stmt.interpolate()


@pytest.mark.edge_case
def test_union_member_failure_raises_build_error(fake_runner_factory, sqlite_dialect):
    stmt = UnionStmt(fake_runner_factory(sqlite_dialect), [SelectBuilder('id').from_('t'), SelectBuilder()])

    with pytest.raises(BuildError):
        stmt.load()

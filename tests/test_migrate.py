from tripcanvas.db import migrate


def test_schema_statements_parse():
    statements = migrate.load_statements()
    tables = [s for s in statements if s.startswith("CREATE TABLE")]
    assert len(tables) == 2
    assert any("blocks" in s for s in tables)
    assert not any("--" in s or "/*" in s for s in statements)


def test_split_ignores_comments_and_blanks():
    sql = "/* header */\nSELECT 1; -- trailing\n;\n  SELECT 2 ;"
    assert migrate.split_statements(migrate.strip_comments(sql)) == ["SELECT 1", "SELECT 2"]


def test_dry_run_touches_no_database(monkeypatch):
    def boom():
        raise AssertionError("dry run must not connect")

    monkeypatch.setattr(migrate, "transaction", boom)
    assert migrate.run(dry_run=True) == len(migrate.load_statements())

"""Tests for SQL text extraction from source code."""
import pytest

from feature_replicator.extraction import (
    extract_csharp_queries,
    extract_java_queries,
    extract_javascript_queries,
    extract_php_queries,
    extract_python_queries,
)

ALL_EXTRACTORS = [
    extract_csharp_queries,
    extract_java_queries,
    extract_php_queries,
    extract_python_queries,
    extract_javascript_queries,
]


class TestNoSql:
    """Text without SQL verbs never yields queries."""

    @pytest.mark.parametrize("extract", ALL_EXTRACTORS)
    def test_plain_strings(self, extract):
        """Should return an empty list when no literal starts with a verb."""
        content = 'var greeting = "hello world"; var other = \'selective\';'
        assert extract(content) == []

    @pytest.mark.parametrize("extract", ALL_EXTRACTORS)
    def test_empty_content(self, extract):
        assert extract("") == []


class TestSplitVerb:
    """A verb alone in the first literal of a run still starts a query."""

    @pytest.mark.parametrize("extract", [
        extract_csharp_queries,
        extract_java_queries,
        extract_javascript_queries,
    ])
    def test_verb_in_own_literal(self, extract):
        """Should check the folded run, not only its first piece."""
        content = 'var sql = "SELECT " +\n   "a, b FROM Orders WHERE id = 1";'
        assert extract(content) == ["SELECT a, b FROM Orders WHERE id = 1"]

    def test_php_dot_concatenation(self):
        content = '<?php $sql = "SELECT " . "a FROM ventas WHERE id = 1";'
        assert extract_php_queries(content) == ["SELECT a FROM ventas WHERE id = 1"]


# =============================================================================
# C#
# =============================================================================

class TestCSharpQueries:
    """Test C# literal extraction."""

    def test_concatenated_literals_fold_into_one_query(self):
        """Should join literals separated by '+'."""
        content = (
            'var sql = "SELECT Id, Name FROM dbo.Users " +\n'
            '          "WHERE Active = 1";'
        )
        assert extract_csharp_queries(content) == ["SELECT Id, Name FROM dbo.Users WHERE Active = 1"]

    def test_verbatim_string(self):
        """Should read multi-line verbatim strings."""
        content = 'db.Query(@"SELECT *\n    FROM Orders\n    WHERE Id = @id");'
        assert extract_csharp_queries(content) == ["SELECT * FROM Orders WHERE Id = @id"]

    def test_stored_procedure(self):
        """Should accept EXEC as a verb for C#."""
        content = 'cmd.CommandText = "EXEC dbo.usp_GetOrders @customerId";'
        assert extract_csharp_queries(content) == ["EXEC dbo.usp_GetOrders @customerId"]

    def test_commented_out_query_is_ignored(self):
        """Should skip literals inside comments."""
        content = '// var sql = "SELECT * FROM Legacy";\nvar sql = "DELETE FROM Temp WHERE Id = 1";'
        assert extract_csharp_queries(content) == ["DELETE FROM Temp WHERE Id = 1"]

    def test_duplicates_are_kept(self):
        """Should return repeated queries once per occurrence."""
        content = 'a("SELECT 1 FROM T"); b("SELECT 1 FROM T");'
        assert extract_csharp_queries(content) == ["SELECT 1 FROM T", "SELECT 1 FROM T"]


# =============================================================================
# Java
# =============================================================================

class TestJavaQueries:
    """Test Java literal and annotation extraction."""

    def test_query_annotations(self, java_repo):
        """Should read JPQL and native @Query values."""
        path = java_repo / "src/main/java/com/acme/orders/OrderRepository.java"
        assert extract_java_queries(path.read_text()) == [
            "SELECT o FROM Order o WHERE o.status = :status",
            "SELECT * FROM orders WHERE customer_id = ?1",
        ]

    def test_named_query(self):
        """Should read the query attribute of @NamedQuery."""
        content = '@NamedQuery(name = "Order.open", query = "select o from Order o where o.open = true")'
        assert extract_java_queries(content) == ["select o from Order o where o.open = true"]

    def test_annotation_value_with_any_verb(self):
        """Should accept annotation arguments that do not start with a verb."""
        content = '@Query("FROM Order o WHERE o.total > 100")'
        assert extract_java_queries(content) == ["FROM Order o WHERE o.total > 100"]

    def test_text_block(self):
        content = 'String sql = """\n    UPDATE orders SET status = ?\n    WHERE id = ?\n    """;'
        assert extract_java_queries(content) == ["UPDATE orders SET status = ? WHERE id = ?"]


# =============================================================================
# PHP
# =============================================================================

class TestPhpQueries:
    """Test PHP literal extraction."""

    def test_dot_concatenation(self, php_repo):
        """Should fold literals joined by '.' across lines."""
        queries = extract_php_queries((php_repo / "reporte_ventas.php").read_text())
        assert queries == [
            "SELECT v.id, v.fecha, v.total FROM ventas v "
            "INNER JOIN clientes c ON c.id = v.cliente_id "
            "WHERE v.vendedor_id = $vendedor AND MONTH(v.fecha) = $mes",
            "INSERT INTO reportes_log (vendedor_id, mes) VALUES ($vendedor, $mes)",
        ]

    def test_heredoc(self):
        """Should read heredoc bodies."""
        content = "<?php\n$sql = <<<SQL\nSELECT id FROM productos\nWHERE activo = 1\nSQL;\n"
        assert extract_php_queries(content) == ["SELECT id FROM productos WHERE activo = 1"]

    def test_hash_comment_is_ignored(self):
        content = "<?php\n# $q = \"SELECT * FROM old\";\n$q = 'DELETE FROM carrito WHERE id = 1';"
        assert extract_php_queries(content) == ["DELETE FROM carrito WHERE id = 1"]

    def test_inline_html_is_ignored(self):
        """Should not read quoted text outside PHP blocks."""
        content = '<p title="Select one">x</p>\n<?php $q = "UPDATE t SET a = 1"; ?>\n<a href="Update">u</a>'
        assert extract_php_queries(content) == ["UPDATE t SET a = 1"]


# =============================================================================
# Python
# =============================================================================

class TestPythonQueries:
    """Test Python literal extraction."""

    def test_implicit_concatenation_in_execute(self, python_repo):
        """Should fold adjacent literals inside execute(...)."""
        queries = extract_python_queries((python_repo / "api" / "routes.py").read_text())
        assert queries == [
            "INSERT INTO invoices (customer_id, total) VALUES (%s, %s)",
            "SELECT id, total FROM invoices ORDER BY id",
        ]

    def test_execute_accepts_with_clause(self):
        """Should accept CTEs passed to execute."""
        content = 'cursor.execute("WITH recent AS (SELECT 1) SELECT * FROM recent")'
        assert extract_python_queries(content) == ["WITH recent AS (SELECT 1) SELECT * FROM recent"]

    def test_triple_quoted(self):
        content = 'SQL = """\n    SELECT id\n    FROM users\n"""'
        assert extract_python_queries(content) == ["SELECT id FROM users"]

    def test_hash_comment_is_ignored(self):
        content = '# "SELECT * FROM users"\nname = "users"'
        assert extract_python_queries(content) == []


# =============================================================================
# JavaScript
# =============================================================================

class TestJavaScriptQueries:
    """Test JavaScript/TypeScript literal extraction."""

    def test_quoted_literal(self, js_repo):
        queries = extract_javascript_queries((js_repo / "routes" / "orders.routes.js").read_text())
        assert queries == ["SELECT id, total FROM orders WHERE status = $1"]

    def test_template_literal(self):
        """Should read multi-line template literals."""
        content = "const q = `\n  SELECT *\n  FROM products\n  WHERE id = ${id}\n`;"
        assert extract_javascript_queries(content) == ["SELECT * FROM products WHERE id = ${id}"]

    def test_plus_concatenation(self):
        content = "const q = 'DELETE FROM carts ' + 'WHERE id = $1';"
        assert extract_javascript_queries(content) == ["DELETE FROM carts WHERE id = $1"]

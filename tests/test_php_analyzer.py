"""Tests for the tree-sitter PHP analyzer."""
import pytest

from feature_replicator.treesitter import (
    PHPASTAnalyzer,
    analyze_code,
    create_ast_analyzer,
    get_parser,
)


@pytest.fixture(scope="module")
def report_analysis(php_repo):
    """Analysis of the legacy PHP report fixture."""
    return analyze_code((php_repo / "reporte_ventas.php").read_text(), "php")


def _names(calls):
    return [call["function"] for call in calls]


# =============================================================================
# Parser setup
# =============================================================================

class TestParsers:
    """Test grammar loading."""

    def test_php_parser_is_cached(self):
        assert get_parser("php") is not None
        assert get_parser("php") is get_parser("php")

    def test_unknown_grammar(self):
        assert get_parser("cobol") is None

    def test_parses_php(self):
        tree = get_parser("php").parse(b"<?php echo 1;")
        assert tree.root_node.type == "program"
        assert not tree.root_node.has_error


# =============================================================================
# Analyzer factory
# =============================================================================

class TestCreateAnalyzer:
    """Test language dispatch."""

    def test_php(self):
        assert isinstance(create_ast_analyzer("php"), PHPASTAnalyzer)

    @pytest.mark.parametrize("language", ["java", "csharp", "python", "javascript", "typescript"])
    def test_planned_languages(self, language):
        with pytest.raises(ValueError, match="not yet implemented"):
            create_ast_analyzer(language)

    def test_unsupported_language(self):
        with pytest.raises(ValueError, match="Unsupported language"):
            analyze_code("x", "cobol")


# =============================================================================
# Classification on the report fixture
# =============================================================================

class TestReportAnalysis:
    """Test classification of a procedural PHP script."""

    def test_result_shape(self, report_analysis):
        assert set(report_analysis) == {
            "validations",
            "calculations",
            "error_handling",
            "state_transitions",
            "function_calls",
            "variable_assignments",
        }

    def test_if_validation(self, report_analysis):
        """Should record the guard with its line, digest and complexity."""
        (validation,) = report_analysis["validations"]
        assert validation["type"] == "if"
        assert validation["line"] == 15
        assert validation["condition"].startswith("(")
        assert "$mes > 12" in validation["condition"]
        assert validation["complexity"] == 2
        assert validation["then"] == "throw new InvalidArgumentException('Invalid month')"
        assert validation["else"] is None

    def test_throw(self, report_analysis):
        assert report_analysis["error_handling"] == [
            {"type": "throw", "exception": "new InvalidArgumentException('Invalid month')", "line": 16},
        ]

    def test_calculations(self, report_analysis):
        """Should record compound arithmetic and math-function assignments."""
        assert report_analysis["calculations"] == [
            {"variable": "$total", "formula": "$total + $row['total']", "line": 27, "operations": ["+"]},
            {"variable": "$comision", "formula": "round($total * 0.05, 2)", "line": 29, "operations": ["*"]},
        ]

    def test_state_transition(self, report_analysis):
        assert report_analysis["state_transitions"] == [
            {"field": "$estado", "new_value": "'generado'", "line": 33},
        ]

    def test_function_calls(self, report_analysis):
        names = [name for name in _names(report_analysis["function_calls"]) if name != "isset"]
        assert names == [
            "session_start",
            "mysqli_query",
            "mysqli_fetch_assoc",
            "round",
            "mysqli_query",
            "$pdf->AddPage",
            "$pdf->Cell",
            "$pdf->Cell",
            "$pdf->Output",
        ]
        cell = [c for c in report_analysis["function_calls"] if c["function"] == "$pdf->Cell"][0]
        assert cell["arguments"] == ["40", "10", "'Ventas del mes'"]
        assert cell["line"] == 37

    def test_variable_assignments(self, report_analysis):
        variables = [a["variable"] for a in report_analysis["variable_assignments"]]
        assert variables == [
            "$vendedor", "$mes", "$anio", "$sql", "$result", "$total",
            "$row", "$total", "$comision", "$estado", "$pdf",
        ]
        pdf = report_analysis["variable_assignments"][-1]
        assert pdf == {"variable": "$pdf", "value": "new FPDF()", "line": 35}


# =============================================================================
# Focused snippets
# =============================================================================

class TestSnippets:
    """Test individual node kinds."""

    def test_code_without_open_tag(self):
        """Should accept bare statements and keep line numbers."""
        result = analyze_code("$status = 'closed';\n$x = 1;")
        assert result["state_transitions"] == [{"field": "$status", "new_value": "'closed'", "line": 1}]
        assert result["variable_assignments"][1]["line"] == 2

    def test_if_else_and_elseif(self):
        code = (
            "<?php\n"
            "if ($a > 1 && $b) {\n"
            "    $x = 1;\n"
            "} elseif ($a < 0) {\n"
            "    return false;\n"
            "} else {\n"
            "    notify($a);\n"
            "}\n"
        )
        validations = analyze_code(code)["validations"]
        assert [v["line"] for v in validations] == [2, 4]
        assert validations[0]["then"] == "$x = 1"
        assert validations[0]["else"] == "notify($a)"
        assert validations[0]["complexity"] == 1
        assert validations[1]["then"] == "return false"
        assert validations[1]["condition"] == "($a < 0)"

    def test_switch(self):
        code = (
            "<?php\n"
            "switch ($estado) {\n"
            "    case 'A':\n"
            "        $next = 'B';\n"
            "        break;\n"
            "    default:\n"
            "        throw new Exception('bad');\n"
            "}\n"
        )
        (validation,) = analyze_code(code)["validations"]
        assert validation["type"] == "switch"
        assert validation["discriminant"] == "($estado)"
        assert validation["line"] == 2
        assert [case["value"] for case in validation["cases"]] == ["'A'", "default"]
        assert validation["cases"][0]["action"] == "$next = 'B'"
        assert validation["cases"][1]["action"] == "throw new Exception('bad')"

    def test_try_catch_finally(self):
        code = (
            "<?php\n"
            "try {\n"
            "    $pdo->beginTransaction();\n"
            "} catch (PDOException | RuntimeException $e) {\n"
            "    log_error($e);\n"
            "} finally {\n"
            "    $pdo = null;\n"
            "}\n"
        )
        handlers = [h for h in analyze_code(code)["error_handling"] if h["type"] == "try-catch"]
        assert handlers == [{
            "type": "try-catch",
            "try_block": "$pdo->beginTransaction()",
            "catches": [{
                "exception_type": "PDOException | RuntimeException",
                "variable": "e",
                "handler": "log_error($e)",
            }],
            "line": 2,
            "finally": "$pdo = null",
        }]

    def test_digest_is_limited(self):
        body = "\n".join(f"    f{i}();" for i in range(7))
        code = f"<?php\nif ($x) {{\n{body}\n}}\n"
        (validation,) = analyze_code(code)["validations"]
        assert validation["then"] == "f0(); f1(); f2(); f3(); f4(); ... (2 more statements)"

    def test_binary_calculation(self):
        result = analyze_code("<?php\n$iva = $subtotal * 0.21 + $envio;")
        assert result["calculations"] == [
            {"variable": "$iva", "formula": "$subtotal * 0.21 + $envio", "line": 2, "operations": ["+", "*"]},
        ]

    def test_string_concatenation_is_not_a_calculation(self):
        result = analyze_code("<?php\n$label = 'Total: ' . $total;")
        assert result["calculations"] == []
        assert result["variable_assignments"][0]["value"] == "'Total: ' . $total"

    def test_static_and_member_calls(self):
        result = analyze_code("<?php\nOrder::find(1);\n$repo->save($order);")
        assert _names(result["function_calls"]) == ["Order::find", "$repo->save"]

    def test_math_method_counts_as_calculation(self):
        result = analyze_code("<?php\n$n = $items->count();")
        assert result["calculations"][0]["formula"] == "$items->count()"

    def test_comments_are_skipped(self):
        result = analyze_code("<?php\n// $x = compute();\n/* if ($y) { return; } */\n$z = 1;")
        assert result["validations"] == []
        assert result["function_calls"] == []
        assert [a["variable"] for a in result["variable_assignments"]] == ["$z"]


# =============================================================================
# Parse errors
# =============================================================================

class TestParseErrors:
    """Test handling of code that does not parse."""

    def test_syntax_error(self):
        result = analyze_code("<?php\n$x = ;\nif ( {")
        assert result["parse_error"].startswith("Syntax error near line")
        assert result["validations"] == []
        assert result["function_calls"] == []

    def test_unencodable_code(self):
        """Should report a lone surrogate as a parse error instead of raising."""
        result = analyze_code("<?php $x = '\ud800';")
        assert "surrogates not allowed" in result["parse_error"]
        assert result["variable_assignments"] == []

    def test_valid_code_has_no_parse_error(self):
        assert "parse_error" not in analyze_code("<?php echo 'ok';")

    def test_analyzer_is_reusable(self):
        analyzer = PHPASTAnalyzer()
        first = analyzer.analyze("<?php $a = round($b);")
        analyzer.analyze("<?php $x = ;")
        second = analyzer.analyze("<?php $a = round($b);")
        assert first.to_dict() == second.to_dict()

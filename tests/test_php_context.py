"""Tests for PHP business-context enrichment."""
import pytest

from feature_replicator.features.analyzer import analyze_feature, resolve_entry_files
from feature_replicator.features.models import QueryInfo, SourceFile, TechStack
from feature_replicator.features.php_context import (
    MAX_ANALYSIS_ITEMS,
    analysis_rules,
    analyze_sources,
    build_process_flow,
    catalog_structure,
    classify_output,
    example_scenarios,
    extract_http_params,
    infer_actors,
    infer_purpose,
    infer_role,
)
from feature_replicator.scanner import load_tech_stack

REPORT = "reporte_ventas.php"


@pytest.fixture(scope="module")
def report_spec(php_repo, legacy_config):
    """Enriched spec of the legacy sales report."""
    files = resolve_entry_files(php_repo, [REPORT])
    stack = TechStack.from_dict(load_tech_stack(php_repo))
    return analyze_feature("php-legacy-page-reporte-ventas", files, stack, legacy_config).to_dict()


# =============================================================================
# Inputs
# =============================================================================

class TestHttpParams:
    """Test request parameter and form field extraction."""

    def test_sources_in_order_of_appearance(self):
        content = "$a = $_POST['nombre'];\n$b = $_REQUEST[\"id\"];\n$c = $_SESSION['user'];"
        params = extract_http_params(content)["http_params"]
        assert params == [
            {"name": "nombre", "source": "POST"},
            {"name": "id", "source": "GET/POST"},
            {"name": "user", "source": "SESSION"},
        ]

    def test_repeated_params_once(self):
        content = "$_GET['q']; $_GET['q']; $_POST['q'];"
        params = extract_http_params(content)["http_params"]
        assert [(p["name"], p["source"]) for p in params] == [("q", "GET"), ("q", "POST")]

    def test_filter_input(self):
        content = "$mes = filter_input(INPUT_GET, 'mes', FILTER_VALIDATE_INT);"
        assert extract_http_params(content)["http_params"] == [{"name": "mes", "source": "GET"}]

    def test_descriptions_from_lookup(self):
        """Should attach configured meanings, ignoring case."""
        params = extract_http_params("$_GET['Mes'];", {"mes": "Report month"})["http_params"]
        assert params == [{"name": "Mes", "source": "GET", "description": "Report month"}]

    def test_form_fields(self):
        content = (
            '<form><input type="text" name="cliente">\n'
            '<select name="zona"></select>\n'
            '<input type="checkbox" name="items[]">\n'
            '<textarea name="cliente"></textarea></form>'
        )
        assert extract_http_params(content)["form_fields"] == ["cliente", "zona", "items"]

    def test_other_sources(self):
        content = "move_uploaded_file($_FILES['doc']['tmp_name'], $dest);\n$raw = file_get_contents('php://input');"
        assert extract_http_params(content)["other_sources"] == [
            "$_FILES (file uploads)",
            "php://input (raw request body)",
        ]

    def test_nothing_found(self):
        assert extract_http_params("<?php echo 1;") == {
            "http_params": [],
            "form_fields": [],
            "other_sources": [],
        }


# =============================================================================
# Output classification
# =============================================================================

class TestClassifyOutput:
    """Test output type classification."""

    def test_html_default(self):
        output = classify_output("<table><tr><th>Cliente</th><th> Total </th></tr></table>")
        assert output == {
            "type": "HTML",
            "description": "HTML page rendered by the script",
            "structure": ["Cliente", "Total"],
        }

    def test_excel(self):
        content = (
            "$book = new PHPExcel();\n"
            "$book->getActiveSheet()->setCellValue('A1', 'Producto');\n"
            "$book->getActiveSheet()->setCellValue('B1', 'Cantidad');\n"
            "header('Content-Type: application/vnd.ms-excel');"
        )
        output = classify_output(content)
        assert output["type"] == "Excel"
        assert output["structure"] == ["Producto", "Cantidad"]

    def test_json(self):
        content = "echo json_encode(['ok' => true, 'total' => $total]);"
        output = classify_output(content)
        assert output["type"] == "JSON"
        assert output["structure"] == ["ok", "total"]

    def test_tie_prefers_earlier_type(self):
        """Should keep the first type on equal signal counts."""
        content = "header('Content-Type: application/pdf'); echo json_encode($x);"
        assert classify_output(content)["type"] == "PDF"


# =============================================================================
# Process flow
# =============================================================================

class TestProcessFlow:
    """Test process flow outlines."""

    def test_numbered_comments_first(self):
        content = "// Paso 1: Validar datos\n# 2) Guardar pedido\n"
        assert build_process_flow(content, []) == ["1. Validar datos", "2. Guardar pedido"]

    def test_query_blocks(self):
        """Should group queries into configured blocks, the rest into one step."""
        infos = [
            QueryInfo(type="SELECT", tables=["stock"]),
            QueryInfo(type="UPDATE", tables=["inventario.stock"]),
            QueryInfo(type="INSERT", tables=["audit"]),
            QueryInfo(type="unknown"),
        ]
        steps = build_process_flow("", infos, {"stock": "Update inventory"})
        assert steps == [
            "1. Update inventory (SELECT, UPDATE on stock, inventario.stock)",
            "2. Other data operations (INSERT, unknown on audit)",
        ]

    def test_side_effect_steps(self):
        content = "mail($to, 'Pedido', $body);\nheader('Location: gracias.php');"
        assert build_process_flow(content, [], output_type="JSON") == [
            "1. Send email notification",
            "2. Redirect to the next page",
            "3. Return JSON response",
        ]

    def test_document_steps(self):
        assert build_process_flow("", [], output_type="Excel") == ["1. Generate Excel spreadsheet"]

    def test_empty(self):
        assert build_process_flow("<?php echo 1;", []) == []


# =============================================================================
# Purpose, actors and roles
# =============================================================================

class TestPurposeAndActors:
    """Test purpose and actor inference."""

    def test_purpose_from_lookup(self):
        purposes = {"PHP-Legacy-Page-Alta": "Register a new customer"}
        assert infer_purpose("php-legacy-page-alta", "", purposes) == "Register a new customer"

    def test_purpose_from_doc_comment(self):
        content = "/**\n * Short.\n */\n/**\n * Lists the open orders of a customer.\n * @param int $id\n */"
        assert infer_purpose("x", content) == "Lists the open orders of a customer."

    def test_no_purpose(self):
        assert infer_purpose("x", "// just a comment") is None

    def test_actors(self):
        assert infer_actors("if ($_SESSION['admin']) { $usuario = 1; }") == ["Administrator", "User"]
        assert infer_actors("$subadmin = 1;") == []

    @pytest.mark.parametrize("info,expected", [
        (QueryInfo(type="SELECT"), "full read"),
        (QueryInfo(type="SELECT", filters="WHERE id = 1"), "filtered read"),
        (QueryInfo(type="INSERT"), "record creation"),
        (QueryInfo(type="UPDATE", filters="WHERE id = 1"), "record update"),
        (QueryInfo(type="UPDATE"), "bulk update"),
        (QueryInfo(type="DELETE", filters="WHERE id = 1"), "record deletion"),
        (QueryInfo(type="DELETE"), "bulk deletion"),
        (QueryInfo(type="STORED_PROC"), "stored procedure call"),
        (QueryInfo(), "unknown"),
    ])
    def test_infer_role(self, info, expected):
        assert infer_role(info) == expected


# =============================================================================
# Catalog and scenarios
# =============================================================================

class TestCatalogAndScenarios:
    """Test the table catalog and example scenarios."""

    def test_catalog_merges_tables(self):
        infos = [
            QueryInfo(type="SELECT", tables=["pedidos"], columns=["id", "fecha"]),
            QueryInfo(type="UPDATE", tables=["pedidos"]),
            QueryInfo(type="SELECT", tables=["pedidos"], columns=["id", "estado"]),
        ]
        assert catalog_structure(infos) == {
            "pedidos": {"columns": ["id", "fecha", "estado"], "operations": ["SELECT", "UPDATE"]},
        }

    def test_scenarios_without_inputs(self):
        inputs = {"http_params": [], "form_fields": []}
        output = {"type": "HTML", "structure": []}
        assert example_scenarios(inputs, output, 0) == [
            "The script is opened without parameters and returns a HTML response.",
        ]

    def test_scenarios_limit_names(self):
        inputs = {"http_params": [{"name": "a"}, {"name": "b"}], "form_fields": ["b", "c", "d"]}
        output = {"type": "JSON", "structure": ["ok"]}
        assert example_scenarios(inputs, output, 2) == [
            "A request supplies a, b, c and receives a JSON response.",
            "Input that fails one of the 2 validation checks is rejected before any data is changed.",
            "The response contains ok.",
        ]


# =============================================================================
# Tree analysis merge
# =============================================================================

class TestAnalyzeSources:
    """Test merging tree analysis across entry files."""

    def test_records_carry_file(self):
        sources = [
            SourceFile("a.php", "<?php $total = round($x);"),
            SourceFile("b.php", "<?php $estado = 'cerrado';"),
        ]
        analysis = analyze_sources(sources)
        assert analysis["counts"]["calculations"] == 1
        assert analysis["calculations"][0]["file"] == "a.php"
        assert analysis["state_transitions"][0]["file"] == "b.php"
        assert "parse_errors" not in analysis

    def test_parse_errors_are_reported(self):
        analysis = analyze_sources([SourceFile("bad.php", "<?php if ( {")])
        assert analysis["parse_errors"][0]["file"] == "bad.php"
        assert analysis["counts"]["validations"] == 0

    def test_records_capped(self):
        content = "<?php\n" + "\n".join(f"$v{i} = {i};" for i in range(MAX_ANALYSIS_ITEMS + 5))
        analysis = analyze_sources([SourceFile("many.php", content)])
        assert analysis["counts"]["variable_assignments"] == MAX_ANALYSIS_ITEMS + 5
        assert len(analysis["variable_assignments"]) == MAX_ANALYSIS_ITEMS

    def test_analysis_rules(self):
        analysis = {
            "calculations": [{"variable": "$iva", "formula": "$neto * 0.21"}],
            "state_transitions": [{"field": "$status", "new_value": "'paid'"}],
        }
        assert analysis_rules(analysis) == [
            "Calculation: $iva = $neto * 0.21",
            "State change: $status -> 'paid'",
        ]


# =============================================================================
# Full enrichment
# =============================================================================

class TestReportEnrichment:
    """Test the enriched spec of the legacy sales report."""

    def test_identity(self, report_spec):
        assert report_spec["name"] == "reporte_ventas"
        assert report_spec["domain_purpose"] == (
            "Monthly sales report by salesperson, exported as PDF for the regional managers."
        )
        assert report_spec["tech_stack"]["language"] == "php"

    def test_inputs(self, report_spec):
        assert report_spec["inputs"] == {
            "http_params": [
                {"name": "vendedor_id", "source": "SESSION"},
                {"name": "mes", "source": "GET", "description": "Report month (1-12)"},
                {"name": "anio", "source": "GET", "description": "Report year"},
            ],
            "form_fields": [],
            "other_sources": [],
        }

    def test_outputs(self, report_spec):
        assert report_spec["outputs"] == [{
            "type": "PDF",
            "description": "PDF document generated on the server",
            "structure": ["Ventas del mes", "Total"],
        }]

    def test_business_context(self, report_spec):
        context = report_spec["business_context"]
        assert context["purpose"] == report_spec["domain_purpose"]
        assert context["actors"] == ["User", "Salesperson"]
        assert context["entry_points"] == [{"file": REPORT, "methods": []}]

    def test_process_flow(self, report_spec):
        assert report_spec["process_flow"] == [
            "1. Validate the requested period",
            "2. Load sales for the period",
            "3. Record that the report was generated",
            "4. Load sales for the period (SELECT on ventas, clientes)",
            "5. Other data operations (INSERT on reportes_log)",
            "6. Generate PDF document",
        ]

    def test_data_sources_have_roles(self, report_spec):
        sources = report_spec["data_sources"]
        assert [(s["table"], s["role"]) for s in sources] == [
            ("ventas", "filtered read"),
            ("clientes", "filtered read"),
            ("reportes_log", "record creation"),
        ]
        assert {s["engine"] for s in sources} == {"mysql"}
        assert {s["database"] for s in sources} == {"DATABASE_NAME"}
        assert {s["schema"] for s in sources} == {""}

    def test_catalog(self, report_spec):
        assert report_spec["catalog_structure"] == {
            "ventas": {"columns": ["v.id", "v.fecha", "v.total"], "operations": ["SELECT"]},
            "clientes": {"columns": ["v.id", "v.fecha", "v.total"], "operations": ["SELECT"]},
            "reportes_log": {"columns": [], "operations": ["INSERT"]},
        }

    def test_scenarios(self, report_spec):
        assert report_spec["example_scenarios"] == [
            "A request supplies vendedor_id, mes, anio and receives a PDF response.",
            "Input that fails one of the 1 validation checks is rejected before any data is changed.",
            "The response contains Ventas del mes, Total.",
        ]

    def test_business_rules(self, report_spec):
        """Should append tree-derived calculations and state changes."""
        assert report_spec["business_rules"] == [
            "Contains 1 validations in code",
            "Calculation: $total = $total + $row['total']",
            "Calculation: $comision = round($total * 0.05, 2)",
            "State change: $estado -> 'generado'",
        ]

    def test_code_analysis(self, report_spec):
        analysis = report_spec["code_analysis"]
        assert analysis["counts"]["validations"] == 1
        assert analysis["counts"]["calculations"] == 2
        assert analysis["counts"]["error_handling"] == 1
        assert analysis["counts"]["variable_assignments"] == 11
        assert all(record["file"] == REPORT for record in analysis["function_calls"])

    def test_entry_point_methods(self, php_repo, legacy_config):
        """Should list the functions each entry file declares."""
        files = resolve_entry_files(php_repo, ["includes/db.php", "classes/Cart.php"])
        spec = analyze_feature("php-legacy-dataaccess-db", files, TechStack.from_dict(load_tech_stack(php_repo)), legacy_config)
        assert spec.business_context["entry_points"] == [
            {"file": "includes/db.php", "methods": ["db_connect"]},
            {"file": "classes/Cart.php", "methods": ["add", "count"]},
        ]
        assert spec.business_context["actors"] == []

    def test_purpose_from_config(self, php_repo, legacy_config):
        domain = legacy_config.legacy_domain.model_copy(
            update={"feature_purposes": {"php-legacy-utility-helpers": "Shared formatting helpers"}}
        )
        config = legacy_config.model_copy(update={"legacy_domain": domain})
        files = resolve_entry_files(php_repo, ["includes/helpers.php"])
        spec = analyze_feature("php-legacy-utility-helpers", files, TechStack.from_dict(load_tech_stack(php_repo)), config)
        assert spec.domain_purpose == "Shared formatting helpers"
        assert spec.business_context["purpose"] == "Shared formatting helpers"

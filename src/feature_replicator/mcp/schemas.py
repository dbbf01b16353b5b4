"""Tool schemas for MCP server.

Defines JSON Schema for each tool's input parameters.
"""

_TECH_STACK_SCHEMA = {
    "type": "object",
    "description": "Tech stack of the repository (optional, read from docs/TECH_STACK_STATUS.json when not provided)",
    "properties": {
        "language": {
            "type": "string",
            "description": "Main language (csharp, java, php, python, javascript, typescript; aliases such as c#, node, py are accepted)"
        },
        "framework": {
            "type": "string",
            "description": "Framework in use (aspnet-mvc, spring, laravel, django, express, ...)"
        },
        "databases": {
            "type": "array",
            "items": {
                "anyOf": [
                    {"type": "string"},
                    {
                        "type": "object",
                        "properties": {
                            "engine": {"type": "string"},
                            "name": {"type": "string"}
                        },
                        "required": ["engine"]
                    }
                ]
            },
            "description": "Database engines (sql_server, postgresql, mysql, oracle, sap_hana), as strings or {engine, name} objects"
        }
    }
}

TOOL_SCHEMAS = {
    "ping": {
        "description": "Health check - verify server is running",
        "inputSchema": {
            "type": "object",
            "properties": {},
            "required": []
        }
    },

    "list_languages": {
        "description": "List the languages supported by the loaded tool configuration, with their file extensions, known frameworks and accepted aliases.",
        "inputSchema": {
            "type": "object",
            "properties": {},
            "required": []
        }
    },

    "list_features": {
        "description": """Scan a legacy repository and return the features detected in it (controllers, endpoints, services, data-access classes, routes, legacy PHP pages).

Detection is pattern based: class-name suffixes, annotations/decorators and directory conventions for the repository's language.

RETURNS: features (id, type, language, files, description, name, metadata), the tech stack used, the scanned path and the number of files scanned. Pass a feature's id and files to scan_feature for the detailed specification.""",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Root path of the repository to scan",
                    "default": "."
                },
                "tech_stack": _TECH_STACK_SCHEMA,
                "max_files": {
                    "type": "number",
                    "description": "Maximum number of files to scan (1-5000)",
                    "default": 300,
                    "minimum": 1,
                    "maximum": 5000
                }
            },
            "required": []
        }
    },

    "scan_feature": {
        "description": """Analyze one feature in depth and return its specification: embedded SQL (tables, columns, filters, joins), file-system paths, external HTTP services, business rules, inputs and outputs.

For PHP the specification also carries business context (purpose, actors, entry points), request parameters, output type, process flow, table catalog, example scenarios and a syntax-tree analysis of validations, calculations and state changes.

Only the given entry files are analyzed; max_depth is accepted for future call-graph following.""",
        "inputSchema": {
            "type": "object",
            "properties": {
                "feature_id": {
                    "type": "string",
                    "description": "Feature id as returned by list_features"
                },
                "entry_files": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Entry files of the feature, relative to path"
                },
                "path": {
                    "type": "string",
                    "description": "Root path of the repository",
                    "default": "."
                },
                "tech_stack": _TECH_STACK_SCHEMA,
                "max_depth": {
                    "type": "number",
                    "description": "Call-graph depth to follow (1-10)",
                    "default": 4,
                    "minimum": 1,
                    "maximum": 10
                }
            },
            "required": ["feature_id", "entry_files"]
        }
    },

    "export_feature_markdown": {
        "description": "Write a feature specification (as returned by scan_feature) to a readable Markdown file named {feature_id}_{name}.md, ready to be used as an implementation contract.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "feature_spec": {
                    "type": "object",
                    "description": "Specification object returned by scan_feature"
                },
                "output_path": {
                    "type": "string",
                    "description": "Directory to write the Markdown file into (created if missing)"
                }
            },
            "required": ["feature_spec", "output_path"]
        }
    },

    "analyze_code": {
        "description": "Parse source code into a syntax tree and classify validations (if/switch), calculations, error handling (try/catch, throw), state transitions, function calls and variable assignments, each with its line number. Only PHP is supported.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "code": {
                    "type": "string",
                    "description": "Source code to analyze"
                },
                "language": {
                    "type": "string",
                    "description": "Source language",
                    "default": "php"
                }
            },
            "required": ["code"]
        }
    }
}

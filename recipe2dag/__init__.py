"""recipe2dag package.

Public modules:
- parser: parse() and parse_file() for recipe source
- builder: make_dag() compiling a syntax tree into a Dag
- dag: the Dag graph model
- compilation: compile_source() / compile_file() end to end
- resolver: FileImportResolver for recipe imports
- queries: degree and style helpers over a compiled Dag
- summary: generate() for a text dump
- export_svg: export() for svg rendering (optional dependency)
"""

__all__ = [
    "parser",
    "builder",
    "dag",
    "compilation",
    "resolver",
    "queries",
    "summary",
    "export_svg",
]

"""Feature Replicator: heuristic feature extraction for legacy repositories.

Scans C#, Java, PHP, Python and JavaScript/TypeScript codebases, detects
feature candidates (controllers, services, models, routes), and builds a
structured specification for each feature from the SQL, file paths,
external calls and business rules found in its source files.
"""

__version__ = "0.1.0"

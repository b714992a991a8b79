import os
import tempfile

# Keep the app's import-time storage directories out of the working tree
_tmp_root = tempfile.mkdtemp(prefix="image-pipeline-tests-")
os.environ.setdefault("STORAGE_ROOT", os.path.join(_tmp_root, "public"))
os.environ.setdefault("DB_FILE", os.path.join(_tmp_root, "db.json"))
os.environ["TINYPNG_API_KEY"] = ""

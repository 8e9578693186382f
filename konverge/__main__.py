"""``python -m konverge`` behaves like the ``konverge`` script.

Without arguments it starts the reconcile service, so a container command of
``python -m konverge`` needs nothing else:

    KONVERGE_DIRECTORY=./manifests python -m konverge
    python -m konverge plan -d ./manifests
"""

from __future__ import annotations

import sys

from konverge.cli import cli

cli.main(args=sys.argv[1:] or ["run"], prog_name="konverge")

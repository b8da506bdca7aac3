"""Entry point for `python -m kubesd`.

Usage:
    python -m kubesd
    KUBESD_SECTIONS=apps,infra KUBESD_SECTION_APPS_NAMESPACES=web python -m kubesd
"""

from __future__ import annotations

import asyncio

from kubesd.app import main

asyncio.run(main())

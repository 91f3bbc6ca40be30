"""
Virtual method deriver.

Extracts ``@virt``-tagged methods as dispatch slots. A name seen twice in
one pass is reported and the first definition is kept.
"""

from __future__ import annotations

import logging

from .attributes import VIRTUAL_OPTIONS, AttributeParser
from .errors import DiagnosticCode, Diagnostics
from .ir import MethodRole, TypeBase, VirtualMethodDefinition
from .signals import check_receiver
from .source import RawCollection
from .validations import disallow, only_one

logger = logging.getLogger(__name__)


class VirtualMethodDeriver:
    def __init__(self, parser: AttributeParser, diagnostics: Diagnostics, base: TypeBase = TypeBase.CLASS):
        self.parser = parser
        self.diagnostics = diagnostics
        self.base = base

    def derive(self, collections: list[RawCollection]) -> list[VirtualMethodDefinition]:
        methods: list[VirtualMethodDefinition] = []
        seen: set[str] = set()

        for collection in collections:
            for entry in collection.of_role(MethodRole.VIRTUAL):
                collection.take(entry)
                item = entry.item
                options = self.parser.parse(entry.tag, VIRTUAL_OPTIONS)

                if item.name in seen:
                    self.diagnostics.push(
                        DiagnosticCode.DUPLICATE_NAME,
                        f"Duplicate definition for method `{item.name}`",
                        item.location,
                    )
                    continue
                seen.add(item.name)

                if self.base == TypeBase.INTERFACE:
                    disallow(
                        "interface virtual method",
                        [options.flag("override"), options.flag("override_iface")],
                        self.diagnostics,
                    )
                only_one([options.flag("override"), options.flag("override_iface")], self.diagnostics)

                check_receiver(item, "virtual method", self.diagnostics)

                methods.append(
                    VirtualMethodDefinition(
                        name=item.name,
                        method=item,
                        params=item.arguments,
                        return_type=item.returns,
                        override=options.has("override"),
                        override_iface=options.get("override_iface"),
                        collection=collection.index,
                        location=item.location,
                    )
                )

        logger.debug("Derived %d virtual methods", len(methods))
        return methods

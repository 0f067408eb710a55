"""Collection generator: runs the per-route analysis and assembles the result."""

import logging
from concurrent.futures import ThreadPoolExecutor

from api_collection_gen.analysis.introspect import ControllerIntrospector
from api_collection_gen.analysis.middleware import MiddlewareClassifier
from api_collection_gen.analysis.rules import ValidationRuleResolver, ValidationRuleSet
from api_collection_gen.config import GeneratorConfig
from api_collection_gen.errors import AnalysisError
from api_collection_gen.generator.collection import CollectionAssembler
from api_collection_gen.generator.items import CollectionItem, build_item
from api_collection_gen.generator.naming import NamingEngine
from api_collection_gen.sources.base import RouteDescriptor, filter_routes

logger = logging.getLogger(__name__)


class CollectionGenerator:
    """Turns a list of routes into a Postman collection document."""

    def __init__(self, config: GeneratorConfig, introspector: ControllerIntrospector | None = None):
        self.config = config
        self.introspector = introspector or ControllerIntrospector()
        self.resolver = ValidationRuleResolver(self.introspector)
        self.classifier = MiddlewareClassifier(self.introspector)
        self.naming = NamingEngine()
        self.assembler = CollectionAssembler()

    def generate(self, routes: list[RouteDescriptor]) -> dict:
        selected = filter_routes(routes, self.config.include_routes, self.config.exclude_routes)
        logger.debug("%d of %d routes selected", len(selected), len(routes))
        items = self.process_routes(selected)
        return self.assembler.assemble(items, self.config)

    def process_routes(self, routes: list[RouteDescriptor]) -> list[CollectionItem]:
        """Analyze every route; results keep the input order."""
        if self.config.workers > 1 and len(routes) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                return list(executor.map(self.process_route, routes))
        return [self.process_route(route) for route in routes]

    def process_route(self, route: RouteDescriptor) -> CollectionItem:
        try:
            rules = self.analyze_rules(route)
        except AnalysisError as e:
            logger.warning("%s %s: %s", route.method, route.uri, e)
            rules = {}
        profile = self.classifier.analyze(route.middleware)
        return build_item(route, rules, profile, self.config, self.naming)

    def analyze_rules(self, route: RouteDescriptor) -> ValidationRuleSet:
        """Rules from the handler's validator type, its source and its middleware."""
        if not route.controller or not route.action:
            return {}
        if self.introspector.resolve_action(route.controller, route.action) is None:
            raise AnalysisError(f"Cannot resolve handler {route.controller_ref}")

        validator = self.introspector.find_validator_type(route.controller, route.action)
        rules = self.resolver.resolve(route.controller, route.action, validator)

        for identifier in route.middleware:
            handler = self.introspector.entrypoint(self.introspector.resolve(identifier))
            if handler is not None:
                rules.update(self.resolver.from_source(handler))
        return rules

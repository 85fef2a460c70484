"""
Session -> MQTT message translation.

Builds the wire messages (lasso_mqtt.schemas) for one SearchSession
snapshot. Pure: no I/O, no controller access.
"""

from typing import Optional

from lasso_mqtt.schemas import (
    ListingPayload,
    OverlayMessage,
    Position,
    SearchResultMessage,
    SearchStatus,
    Timestamp,
)
from lasso_search.features.store import FeatureStore
from lasso_search.geometry.shapes import Coordinate
from lasso_search.rendering import AnnotationBuilder
from lasso_search.session import SearchSession
from lasso_service.config import StyleConfig

SCHEMA_VERSION = "1.0"


def _position(coordinate: Coordinate) -> Position:
    return Position(lon=coordinate.longitude, lat=coordinate.latitude)


class SessionMessageBuilder:
    """
    Translates SearchSession snapshots into SearchResultMessage and
    OverlayMessage instances.

    Usage:
        builder = SessionMessageBuilder("denver", store, StyleConfig())
        result_msg = builder.search_result(controller.session)
        overlay_msg = builder.overlay(controller.session)
    """

    def __init__(
        self,
        service_id: str,
        store: FeatureStore,
        style_config: Optional[StyleConfig] = None,
    ):
        self.service_id = service_id
        self.store = store
        self.style_config = style_config or StyleConfig()
        self.annotations = AnnotationBuilder(self.style_config.annotation_style())

    def search_result(self, session: SearchSession) -> SearchResultMessage:
        result = session.last_result
        annotations = [a.to_dict() for a in self.annotations.search_annotations(session)]

        if result is None:
            return SearchResultMessage(
                schema_version=SCHEMA_VERSION,
                timestamp=Timestamp.now(),
                service_id=self.service_id,
                revision=session.revision,
                status=SearchStatus.CLEARED,
            )

        boundary = [_position(c) for c in result.boundary]
        connector = [_position(c) for c in result.connector] if result.connector else []

        if not result.ok:
            return SearchResultMessage(
                schema_version=SCHEMA_VERSION,
                timestamp=Timestamp.now(),
                service_id=self.service_id,
                revision=session.revision,
                status=SearchStatus.REJECTED,
                boundary=boundary,
                connector=connector,
                error=result.error.reason,
                annotations=annotations,
            )

        listings = [
            ListingPayload(
                feature_id=m.feature.feature_id,
                position=_position(m.feature.coordinate),
                title=session.title_for(m.feature),
                price_label=m.feature.price_label,
                selected=m.feature.feature_id == session.selected_feature_id,
            )
            for m in result.matches
        ]

        return SearchResultMessage(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            service_id=self.service_id,
            revision=session.revision,
            status=SearchStatus.OK,
            listings=listings,
            boundary=boundary,
            connector=connector,
            annotations=annotations,
        )

    def overlay(self, session: SearchSession) -> OverlayMessage:
        overlay = session.overlay
        selected_title = None
        if session.selected_feature_id is not None:
            feature = self.store.get(session.selected_feature_id)
            if feature is not None:
                selected_title = session.title_for(feature)

        return OverlayMessage(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            service_id=self.service_id,
            revision=session.revision,
            state=overlay.state.value,
            style=self.style_config.url_for(session.style),
            drawing=session.drawing,
            starting_point=_position(overlay.starting_point) if overlay.starting_point else None,
            route=[_position(c) for c in overlay.route or ()],
            selected_feature_id=session.selected_feature_id,
            selected_title=selected_title,
            annotations=[a.to_dict() for a in self.annotations.overlay_annotations(session)],
        )

# ╭────────────────────────────────────────────────────────────────────────────╮
# │  Care assignments & consent ceremony                                       │
# │                                                                            │
# │  • Views only translate HTTP ⇄ commands/queries; rules live in handlers    │
# │  • Domain errors bubble up to the exception handler                        │
# │  • Latency per view → decorator `track_http`                               │
# ╰────────────────────────────────────────────────────────────────────────────╯
from __future__ import annotations

from django.conf import settings
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from care_consent.adapters.config.composition_root import setup_di_container_from_settings
from care_consent.adapters.observability.decorators import track_http
from care_consent.core.application.commands.assignment_commands import (
    CreateAssignmentCommand,
    CreatePrimaryAssignmentCommand,
    RevokeAssignmentCommand,
)
from care_consent.core.application.commands.consent_commands import (
    DenyConsentCommand,
    RequestConsentOtpCommand,
    ResendConsentOtpCommand,
    VerifyConsentOtpCommand,
)
from care_consent.core.application.queries.consent_queries import (
    CheckAccessQuery,
    ConsentStatusQuery,
    ListSecondaryPatientsQuery,
)
from plugins.django_interface.permissions import IsAdminOrDoctor, IsAdminUser, IsProviderUser
from plugins.django_interface.serializers.consent_serializers import (
    AccessCheckSerializer,
    CreateAssignmentSerializer,
    CreatePrimaryAssignmentSerializer,
    DenyConsentSerializer,
    PaginationSerializer,
    RequestOtpSerializer,
    ResendOtpSerializer,
    VerifyOtpSerializer,
)


# ───────────────────────────────  CQRS Buses  ────────────────────────────────
def command_bus():
    return setup_di_container_from_settings(settings).command_bus()


def query_bus():
    return setup_di_container_from_settings(settings).query_bus()


def _validated(serializer_cls, data) -> dict:
    serializer = serializer_cls(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


# ╭──────────────────────────────────────────────╮
# │      ASSIGNMENTS                             │
# ╰──────────────────────────────────────────────╯
class PrimaryAssignmentView(APIView):
    permission_classes = [IsAdminUser]

    @track_http("PrimaryAssignmentView_post")
    def post(self, request, patient_id):
        data = _validated(CreatePrimaryAssignmentSerializer, request.data)
        dto = command_bus().dispatch(
            CreatePrimaryAssignmentCommand(patient_id=patient_id, actor=request.user.to_actor(), **data)
        )
        return Response(dto.to_api(), status=status.HTTP_201_CREATED)


class AssignmentCreateView(APIView):
    permission_classes = [IsAdminOrDoctor]

    @track_http("AssignmentCreateView_post")
    def post(self, request, patient_id):
        data = _validated(CreateAssignmentSerializer, request.data)
        dto = command_bus().dispatch(
            CreateAssignmentCommand(patient_id=patient_id, actor=request.user.to_actor(), **data)
        )
        return Response(dto.to_api(), status=status.HTTP_201_CREATED)


class AssignmentDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @track_http("AssignmentDetailView_delete")
    def delete(self, request, assignment_id):
        dto = command_bus().dispatch(
            RevokeAssignmentCommand(assignment_id=assignment_id, actor=request.user.to_actor())
        )
        return Response(dto.to_api(), status=status.HTTP_200_OK)


# ╭──────────────────────────────────────────────╮
# │      CONSENT CEREMONY                        │
# ╰──────────────────────────────────────────────╯
class RequestOtpView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @track_http("RequestOtpView_post")
    def post(self, request, patient_id):
        data = _validated(RequestOtpSerializer, request.data)
        dto = command_bus().dispatch(
            RequestConsentOtpCommand(patient_id=patient_id, actor=request.user.to_actor(), **data)
        )
        return Response(dto.to_api(), status=status.HTTP_200_OK)


class ResendOtpView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @track_http("ResendOtpView_post")
    def post(self, request, patient_id):
        data = _validated(ResendOtpSerializer, request.data)
        dto = command_bus().dispatch(
            ResendConsentOtpCommand(patient_id=patient_id, actor=request.user.to_actor(), **data)
        )
        return Response(dto.to_api(), status=status.HTTP_200_OK)


class VerifyOtpView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @track_http("VerifyOtpView_post")
    def post(self, request, patient_id):
        data = _validated(VerifyOtpSerializer, request.data)
        dto = command_bus().dispatch(
            VerifyConsentOtpCommand(patient_id=patient_id, actor=request.user.to_actor(), **data)
        )
        return Response(dto.to_api(), status=status.HTTP_200_OK)


class DenyConsentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @track_http("DenyConsentView_post")
    def post(self, request, patient_id):
        data = _validated(DenyConsentSerializer, request.data)
        dto = command_bus().dispatch(
            DenyConsentCommand(patient_id=patient_id, actor=request.user.to_actor(), **data)
        )
        return Response(dto.to_api(), status=status.HTTP_200_OK)


# ╭──────────────────────────────────────────────╮
# │      READ SIDE                               │
# ╰──────────────────────────────────────────────╯
class ConsentStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @track_http("ConsentStatusView_get")
    def get(self, request, patient_id):
        dto = query_bus().dispatch(ConsentStatusQuery(patient_id=patient_id, actor=request.user.to_actor()))
        return Response(dto.to_api())


class AccessCheckView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @track_http("AccessCheckView_get")
    def get(self, request, patient_id):
        data = _validated(AccessCheckSerializer, request.query_params)
        dto = query_bus().dispatch(CheckAccessQuery(patient_id=patient_id, actor=request.user.to_actor(), **data))
        return Response(dto.to_api())


class SecondaryPatientsView(APIView):
    permission_classes = [IsProviderUser]

    @track_http("SecondaryPatientsView_get")
    def get(self, request):
        data = _validated(PaginationSerializer, request.query_params)
        result = query_bus().dispatch(ListSecondaryPatientsQuery(actor=request.user.to_actor(), **data))
        return Response({
            "results": [item.to_api() for item in result.items],
            "total": result.total,
            "page": result.page,
            "pageSize": result.page_size,
            "totalPages": result.total_pages,
        })

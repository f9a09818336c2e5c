from dependency_injector import containers, providers

container = None


def setup_di_container_from_settings(settings):
    """Builds the DI container once Django settings are loaded; later calls return the same instance."""
    global container  # noqa: PLW0603
    if container is not None:
        return container

    # ------- imports that touch Django models -------
    import structlog

    from care_consent.adapters.message_broker.consent_delivery import CeleryConsentDelivery
    from care_consent.adapters.observability.metrics import register_metric_subscribers
    from care_consent.adapters.repositories.assignment_repo_impl import AssignmentRepoImpl
    from care_consent.adapters.repositories.audit_event_repo_impl import AuditEventRepoImpl
    from care_consent.adapters.repositories.care_directory_repo_impl import CareDirectoryRepoImpl
    from care_consent.adapters.repositories.consent_otp_repo_impl import ConsentOtpRepoImpl
    from care_consent.adapters.repositories.unit_of_work_impl import DjangoUnitOfWork

    # Commands
    from care_consent.core.application.commands.assignment_commands import (
        CreateAssignmentCommand,
        CreatePrimaryAssignmentCommand,
        RevokeAssignmentCommand,
    )
    from care_consent.core.application.commands.consent_commands import (
        DenyConsentCommand,
        ExpireStaleConsentsCommand,
        RequestConsentOtpCommand,
        ResendConsentOtpCommand,
        VerifyConsentOtpCommand,
    )
    from care_consent.core.application.consent_settings import ConsentSettings

    # CQRS buses
    from care_consent.core.application.cqrs import CommandBus, QueryBus

    # Handlers
    from care_consent.core.application.handlers.assignment_handlers import (
        CreateAssignmentHandler,
        CreatePrimaryAssignmentHandler,
        RevokeAssignmentHandler,
    )
    from care_consent.core.application.handlers.consent_handlers import (
        DenyConsentHandler,
        ExpireStaleConsentsHandler,
        RequestConsentOtpHandler,
        ResendConsentOtpHandler,
        VerifyConsentOtpHandler,
    )
    from care_consent.core.application.handlers.consent_query_handlers import (
        CheckAccessHandler,
        ConsentStatusHandler,
        ListSecondaryPatientsHandler,
    )

    # Queries
    from care_consent.core.application.queries.consent_queries import (
        CheckAccessQuery,
        ConsentStatusQuery,
        ListSecondaryPatientsQuery,
    )

    # Services
    from care_consent.core.application.services.assignment_service import AssignmentService
    from care_consent.core.application.services.consent_ceremony_service import ConsentCeremonyService
    from care_consent.core.domain.services.clock import SystemClock
    from care_consent.core.domain.services.event_dispatcher import EventDispatcher
    from care_consent.core.domain.services.otp_codes import OtpCodec

    # ------- container declaration -------
    class Container(containers.DeclarativeContainer):
        config = providers.Configuration()

        # Infra
        logger           = providers.Singleton(structlog.get_logger)
        event_dispatcher = providers.Singleton(EventDispatcher)
        clock            = providers.Singleton(SystemClock)
        consent_settings = providers.Singleton(ConsentSettings.from_django, settings)
        otp_codec        = providers.Singleton(OtpCodec, secret=config.hash_secret)
        uow              = providers.Singleton(DjangoUnitOfWork)

        # CQRS
        command_bus = providers.Singleton(CommandBus)
        query_bus   = providers.Singleton(QueryBus)

        # Ports → adapters
        assignment_repo  = providers.Singleton(AssignmentRepoImpl)
        consent_otp_repo = providers.Singleton(ConsentOtpRepoImpl)
        directory_repo   = providers.Singleton(CareDirectoryRepoImpl)
        audit_trail      = providers.Singleton(AuditEventRepoImpl)
        consent_delivery = providers.Singleton(CeleryConsentDelivery, uow=uow)

        # Business services
        assignment_service = providers.Singleton(
            AssignmentService,
            assignment_repo=assignment_repo,
            directory=directory_repo,
            uow=uow,
            audit=audit_trail,
            clock=clock,
            settings=consent_settings,
            dispatcher=event_dispatcher,
        )
        consent_ceremony_service = providers.Singleton(
            ConsentCeremonyService,
            assignment_repo=assignment_repo,
            otp_repo=consent_otp_repo,
            directory=directory_repo,
            uow=uow,
            delivery=consent_delivery,
            audit=audit_trail,
            codec=otp_codec,
            clock=clock,
            settings=consent_settings,
            dispatcher=event_dispatcher,
        )

        # Command handlers
        create_primary_assignment_handler = providers.Factory(CreatePrimaryAssignmentHandler, assignment_service=assignment_service)
        create_assignment_handler         = providers.Factory(CreateAssignmentHandler,        assignment_service=assignment_service)
        revoke_assignment_handler         = providers.Factory(RevokeAssignmentHandler,        assignment_service=assignment_service)

        request_otp_handler = providers.Factory(
            RequestConsentOtpHandler,
            ceremony=consent_ceremony_service,
            assignment_repo=assignment_repo,
            settings=consent_settings,
        )
        resend_otp_handler = providers.Factory(
            ResendConsentOtpHandler,
            ceremony=consent_ceremony_service,
            assignment_repo=assignment_repo,
            settings=consent_settings,
        )
        verify_otp_handler = providers.Factory(
            VerifyConsentOtpHandler,
            ceremony=consent_ceremony_service,
            assignment_repo=assignment_repo,
            settings=consent_settings,
        )
        deny_consent_handler = providers.Factory(
            DenyConsentHandler,
            ceremony=consent_ceremony_service,
            assignment_repo=assignment_repo,
            settings=consent_settings,
        )
        expire_stale_consents_handler = providers.Factory(ExpireStaleConsentsHandler, ceremony=consent_ceremony_service)

        # Query handlers
        consent_status_handler = providers.Factory(
            ConsentStatusHandler,
            assignment_repo=assignment_repo,
            otp_repo=consent_otp_repo,
            clock=clock,
            settings=consent_settings,
        )
        check_access_handler = providers.Factory(
            CheckAccessHandler, assignment_repo=assignment_repo, clock=clock, settings=consent_settings
        )
        list_secondary_patients_handler = providers.Factory(
            ListSecondaryPatientsHandler, assignment_repo=assignment_repo, clock=clock, settings=consent_settings
        )

        def init(self):
            bus = self.command_bus()
            bus.register(CreatePrimaryAssignmentCommand, self.create_primary_assignment_handler())
            bus.register(CreateAssignmentCommand, self.create_assignment_handler())
            bus.register(RevokeAssignmentCommand, self.revoke_assignment_handler())
            bus.register(RequestConsentOtpCommand, self.request_otp_handler())
            bus.register(ResendConsentOtpCommand, self.resend_otp_handler())
            bus.register(VerifyConsentOtpCommand, self.verify_otp_handler())
            bus.register(DenyConsentCommand, self.deny_consent_handler())
            bus.register(ExpireStaleConsentsCommand, self.expire_stale_consents_handler())

            qb = self.query_bus()
            qb.register(ConsentStatusQuery, self.consent_status_handler())
            qb.register(CheckAccessQuery, self.check_access_handler())
            qb.register(ListSecondaryPatientsQuery, self.list_secondary_patients_handler())

            register_metric_subscribers(self.event_dispatcher())

    # ------- instantiation & config -------
    container = Container()
    container.config.hash_secret.from_value(settings.HASH_SECRET)

    Container.init(container)
    structlog.get_logger(__name__).info("di.container_ready")
    return container

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .children.mysql_children_repository import MySQLChildRepository
from .children.mysql_group_repository import MySQLGroupRepository
from .children.repository import ChildRepository, GroupRepository
from .children.service import ChildService, GroupService
from .core.constants import MAX_MEDIA_BYTES, QR_DEFAULT_XOR_KEY
from .database.connection import DBConfig, DatabaseConnection
from .messaging.dispatcher import NotificationDispatcher
from .messaging.mysql_message_repository import MySQLMessageRepository
from .messaging.mysql_outbox_repository import MySQLOutboxRepository
from .messaging.repository import MessageRepository, OutboxRepository
from .messaging.service import MessageService
from .parents.mysql_parent_repository import MySQLParentRepository
from .parents.repository import ParentRepository
from .parents.service import ParentService
from .profiles.mysql_profile_repository import MySQLProfileRepository
from .profiles.repository import ProfileRepository
from .profiles.service import AuthService, ProfileService
from .qr.codec import QRPayloadReader, SignedChildToken, XorChildCodec
from .qr.resolver import QRResolver
from .reports.factory import ReportLifecycleFactory
from .reports.media import MediaStorage
from .reports.mysql_report_repository import MySQLReportRepository
from .reports.repository import ReportRepository
from .reports.service import ReportService


@dataclass(frozen=True)
class Repositories:
    profiles: ProfileRepository
    children: ChildRepository
    groups: GroupRepository
    parents: ParentRepository
    attendance: AttendanceRepository
    reports: ReportRepository
    messages: MessageRepository
    outbox: OutboxRepository


@dataclass(frozen=True)
class Container:
    repos: Repositories

    xor_codec: XorChildCodec
    signed_token: SignedChildToken
    qr_token_format: str
    media: MediaStorage

    auth_service: AuthService
    profile_service: ProfileService
    group_service: GroupService
    child_service: ChildService
    parent_service: ParentService
    attendance_service: AttendanceService
    report_service: ReportService
    message_service: MessageService
    dispatcher: NotificationDispatcher

    conn: Optional[DatabaseConnection] = None


def build_services(
    repos: Repositories,
    *,
    secret_key: str,
    qr_xor_key: str = QR_DEFAULT_XOR_KEY,
    qr_token_format: str = "signed",
    qr_token_max_age_days: int = 400,
    media_root: str = "media",
    media_url_prefix: str = "/media",
    max_media_bytes: int = MAX_MEDIA_BYTES,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    xor_codec = XorChildCodec(qr_xor_key)
    signed_token = SignedChildToken(secret_key, max_age_days=qr_token_max_age_days)
    resolver = QRResolver(QRPayloadReader(xor_codec, signed_token), repos.children)
    media = MediaStorage(media_root, url_prefix=media_url_prefix, max_bytes=max_media_bytes)

    group_service = GroupService(repos.groups, repos.children)
    child_service = ChildService(
        repos.children,
        group_service,
        parent_child_ids=repos.parents.list_child_ids_for_parent,
    )
    dispatcher = NotificationDispatcher(repos.outbox)

    return Container(
        repos=repos,
        xor_codec=xor_codec,
        signed_token=signed_token,
        qr_token_format=qr_token_format,
        media=media,
        auth_service=AuthService(repos.profiles),
        profile_service=ProfileService(repos.profiles),
        group_service=group_service,
        child_service=child_service,
        parent_service=ParentService(repos.parents, repos.profiles, repos.children),
        attendance_service=AttendanceService(repos.attendance, repos.children, resolver),
        report_service=ReportService(
            repos.reports,
            repos.children,
            repos.parents,
            media=media,
            dispatcher=dispatcher,
            lifecycle_factory=ReportLifecycleFactory(),
        ),
        message_service=MessageService(
            repos.messages, repos.profiles, parent_child_ids=repos.parents.list_child_ids_for_parent
        ),
        dispatcher=dispatcher,
        conn=conn,
    )


def build_container(*, db_config: dict, **settings: Any) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    repos = Repositories(
        profiles=MySQLProfileRepository(conn),
        children=MySQLChildRepository(conn),
        groups=MySQLGroupRepository(conn),
        parents=MySQLParentRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        reports=MySQLReportRepository(conn),
        messages=MySQLMessageRepository(conn),
        outbox=MySQLOutboxRepository(conn),
    )
    return build_services(repos, conn=conn, **settings)

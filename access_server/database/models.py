# access_server/database/models.py
"""
SQLAlchemy Database Models for the WireGuard Access Server
"""

from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()


class Device(Base):
    """
    Device table - one row per provisioned VPN client

    The endpoint, DNS and server key columns are snapshots taken when the
    device was created; they are never updated in place. Changing the key
    or address of a device means deleting it and creating it again.
    """
    __tablename__ = "devices"

    # Identity
    name = Column(String(64), primary_key=True,
                  comment="Unique device name chosen by the owner")
    public_key = Column(String(64), nullable=False, index=True,
                        comment="Client WireGuard public key (Base64)")

    # Network
    address = Column(String(18), unique=True, nullable=False,
                     comment="Single-host CIDR inside the VPN subnet (e.g., 10.0.0.2/32)")

    # Server snapshot
    endpoint = Column(String(255), nullable=False, default="",
                      comment="Server endpoint host:port at creation time")
    dns = Column(String(255), nullable=False, default="",
                 comment="DNS servers pushed to the client at creation time")
    server_public_key = Column(String(64), nullable=False, default="",
                               comment="Server public key at creation time")

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('ix_devices_created_name', 'created_at', 'name'),
    )

    def __repr__(self):
        return f"<Device(name={self.name}, address={self.address})>"

    @property
    def ip(self) -> str:
        """Address without the /32 suffix"""
        return self.address.split('/')[0]

"""Initial contents of the state database.

Run once on the bootstrap machine: records the environment's control
document and machine 0, the state server.
"""

from __future__ import annotations

from pymongo.errors import DuplicateKeyError, PyMongoError

from ..environs.machineconfig import BOOTSTRAP_MACHINE_ID, JOB_MANAGE_ENVIRON
from ..errors import AlreadyExistsError, StorageIOError, ValidationError
from ..mongo.session import DialInfo, SessionFactory, pymongo_session_factory
from ..shared.logging import get_logger

logger = get_logger(__name__)

STATE_DATABASE = "cpboot"
ENVIRONMENTS_COLLECTION = "environments"
MACHINES_COLLECTION = "machines"
ENVIRONMENT_DOC_ID = "e"


def initialize_state(
    addresses: list[str],
    instance_id: str,
    env_type: str,
    session_factory: SessionFactory = pymongo_session_factory,
    dial_info: DialInfo | None = None,
) -> None:
    """Seed a fresh state database.

    Args:
        addresses: State server addresses (host:port)
        instance_id: Provider instance id of the bootstrap machine
        env_type: Environment (provider) type
        session_factory: Opens the database session
        dial_info: Connection template; its addresses are replaced

    Raises:
        ValidationError: If an argument is missing
        AlreadyExistsError: If the state database is already initialized
        StorageIOError: On database failure
    """
    for option, value in (
        ("state-servers", addresses),
        ("instance-id", instance_id),
        ("env-type", env_type),
    ):
        if not value:
            raise ValidationError(message=f"--{option} option must be set", data={"option": option})

    info = dial_info or DialInfo()
    info = DialInfo(
        addresses=list(addresses),
        timeout=info.timeout,
        username=info.username,
        password=info.password,
        tls=info.tls,
        ca_file=info.ca_file,
    )
    session = session_factory(info)
    try:
        db = session.database(STATE_DATABASE)
        environments = db[ENVIRONMENTS_COLLECTION]
        try:
            if environments.find_one({"_id": ENVIRONMENT_DOC_ID}) is not None:
                raise AlreadyExistsError(message="state database already initialized")
            environments.insert_one({"_id": ENVIRONMENT_DOC_ID, "env-type": env_type})
            try:
                db[MACHINES_COLLECTION].insert_one(
                    {
                        "_id": BOOTSTRAP_MACHINE_ID,
                        "instance-id": instance_id,
                        "jobs": [JOB_MANAGE_ENVIRON],
                    }
                )
            except PyMongoError:
                _remove_environment_doc(environments)
                raise
        except DuplicateKeyError as e:
            raise AlreadyExistsError(message="state database already initialized") from e
        except PyMongoError as e:
            raise StorageIOError(message=f"cannot initialize state: {e}") from e
    finally:
        session.close()
    logger.info("state initialized", env_type=env_type, instance=instance_id)


def _remove_environment_doc(environments) -> None:
    # Leaves the database uninitialized, so seeding can be retried.
    try:
        environments.delete_one({"_id": ENVIRONMENT_DOC_ID})
    except PyMongoError as e:
        logger.error("cannot remove environment document", error=str(e))

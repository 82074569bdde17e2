"""
Windows Job Objects through ctypes.

A job created here carries JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE: every process
assigned to it, and every process those start, is terminated when the job
is terminated or its last handle is closed. Children stay in the job even
after their parent exits, which is what makes it a killable identity for a
whole process tree.

The structures are defined with plain ctypes types so this module imports on
every platform; kernel32 is only looked up when a job is created.
"""

import ctypes
import logging
from typing import Optional, Set

logger = logging.getLogger(__name__)

# winnt.h / winbase.h
JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE = 0x00002000
JOB_OBJECT_BASIC_PROCESS_ID_LIST = 3
JOB_OBJECT_EXTENDED_LIMIT_INFORMATION = 9
PROCESS_TERMINATE = 0x0001
PROCESS_SET_QUOTA = 0x0100
ERROR_MORE_DATA = 234

DWORD = ctypes.c_uint32
LARGE_INTEGER = ctypes.c_int64
ULONG_PTR = ctypes.c_size_t
HANDLE = ctypes.c_void_p
BOOL = ctypes.c_int


class IO_COUNTERS(ctypes.Structure):
    _fields_ = [
        ("ReadOperationCount", ctypes.c_uint64),
        ("WriteOperationCount", ctypes.c_uint64),
        ("OtherOperationCount", ctypes.c_uint64),
        ("ReadTransferCount", ctypes.c_uint64),
        ("WriteTransferCount", ctypes.c_uint64),
        ("OtherTransferCount", ctypes.c_uint64),
    ]


class JOBOBJECT_BASIC_LIMIT_INFORMATION(ctypes.Structure):
    _fields_ = [
        ("PerProcessUserTimeLimit", LARGE_INTEGER),
        ("PerJobUserTimeLimit", LARGE_INTEGER),
        ("LimitFlags", DWORD),
        ("MinimumWorkingSetSize", ctypes.c_size_t),
        ("MaximumWorkingSetSize", ctypes.c_size_t),
        ("ActiveProcessLimit", DWORD),
        ("Affinity", ULONG_PTR),
        ("PriorityClass", DWORD),
        ("SchedulingClass", DWORD),
    ]


class JOBOBJECT_EXTENDED_LIMIT_INFORMATION(ctypes.Structure):
    _fields_ = [
        ("BasicLimitInformation", JOBOBJECT_BASIC_LIMIT_INFORMATION),
        ("IoInfo", IO_COUNTERS),
        ("ProcessMemoryLimit", ctypes.c_size_t),
        ("JobMemoryLimit", ctypes.c_size_t),
        ("PeakProcessMemoryUsed", ctypes.c_size_t),
        ("PeakJobMemoryUsed", ctypes.c_size_t),
    ]


def process_id_list_type(capacity: int):
    """JOBOBJECT_BASIC_PROCESS_ID_LIST with room for `capacity` PIDs."""

    class JOBOBJECT_BASIC_PROCESS_ID_LIST(ctypes.Structure):
        _fields_ = [
            ("NumberOfAssignedProcesses", DWORD),
            ("NumberOfProcessIdsInList", DWORD),
            ("ProcessIdList", ULONG_PTR * capacity),
        ]

    return JOBOBJECT_BASIC_PROCESS_ID_LIST


_kernel32 = None


def _load_kernel32():
    global _kernel32
    if _kernel32 is not None:
        return _kernel32

    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    kernel32.CreateJobObjectW.argtypes = [ctypes.c_void_p, ctypes.c_wchar_p]
    kernel32.CreateJobObjectW.restype = HANDLE
    kernel32.SetInformationJobObject.argtypes = [HANDLE, ctypes.c_int, ctypes.c_void_p, DWORD]
    kernel32.SetInformationJobObject.restype = BOOL
    kernel32.QueryInformationJobObject.argtypes = [HANDLE, ctypes.c_int, ctypes.c_void_p, DWORD,
                                                   ctypes.POINTER(DWORD)]
    kernel32.QueryInformationJobObject.restype = BOOL
    kernel32.AssignProcessToJobObject.argtypes = [HANDLE, HANDLE]
    kernel32.AssignProcessToJobObject.restype = BOOL
    kernel32.TerminateJobObject.argtypes = [HANDLE, ctypes.c_uint]
    kernel32.TerminateJobObject.restype = BOOL
    kernel32.OpenProcess.argtypes = [DWORD, BOOL, DWORD]
    kernel32.OpenProcess.restype = HANDLE
    kernel32.CloseHandle.argtypes = [HANDLE]
    kernel32.CloseHandle.restype = BOOL
    _kernel32 = kernel32
    return kernel32


def _last_error(what: str) -> OSError:
    code = ctypes.get_last_error()
    return OSError(code, f"{what} failed: {ctypes.FormatError(code).strip()}")


class JobObject:
    """
    A kill-on-close Windows job.

    Raises:
        OSError: If the job cannot be created or configured.
    """

    def __init__(self):
        self._kernel32 = _load_kernel32()
        handle = self._kernel32.CreateJobObjectW(None, None)
        if not handle:
            raise _last_error("CreateJobObjectW")
        self._handle: Optional[int] = handle

        info = JOBOBJECT_EXTENDED_LIMIT_INFORMATION()
        info.BasicLimitInformation.LimitFlags = JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE
        if not self._kernel32.SetInformationJobObject(
            handle, JOB_OBJECT_EXTENDED_LIMIT_INFORMATION, ctypes.byref(info), ctypes.sizeof(info)
        ):
            error = _last_error("SetInformationJobObject")
            self.close()
            raise error

    @property
    def closed(self) -> bool:
        return self._handle is None

    def assign(self, pid: int) -> None:
        """Put process `pid` into the job. Processes it starts afterwards join too."""
        process = self._kernel32.OpenProcess(PROCESS_SET_QUOTA | PROCESS_TERMINATE, False, pid)
        if not process:
            raise _last_error(f"OpenProcess({pid})")
        try:
            if not self._kernel32.AssignProcessToJobObject(self._handle, process):
                raise _last_error(f"AssignProcessToJobObject({pid})")
        finally:
            self._kernel32.CloseHandle(process)

    def pids(self) -> Set[int]:
        """PIDs of the processes currently running in the job."""
        if self._handle is None:
            return set()
        capacity = 64
        while True:
            id_list = process_id_list_type(capacity)()
            if self._kernel32.QueryInformationJobObject(
                self._handle, JOB_OBJECT_BASIC_PROCESS_ID_LIST, ctypes.byref(id_list),
                ctypes.sizeof(id_list), None
            ):
                return {int(id_list.ProcessIdList[i]) for i in range(id_list.NumberOfProcessIdsInList)}
            if ctypes.get_last_error() != ERROR_MORE_DATA:
                raise _last_error("QueryInformationJobObject")
            capacity *= 4

    def terminate(self, exit_code: int = 1) -> None:
        """Terminate every process in the job."""
        if self._handle is None:
            return
        if not self._kernel32.TerminateJobObject(self._handle, exit_code):
            logger.warning(f"TerminateJobObject failed: {ctypes.FormatError(ctypes.get_last_error()).strip()}")

    def close(self) -> None:
        """Close the job handle; anything still running in the job is killed."""
        if self._handle is None:
            return
        self._kernel32.CloseHandle(self._handle)
        self._handle = None

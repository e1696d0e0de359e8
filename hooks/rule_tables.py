#!/usr/bin/env python3
"""
cmdguard rule tables.

Three tables, each keyed by the minimum safety level at which its rules apply:

  DANGEROUS_RULES     destructive or high-risk shell commands
  EXFILTRATION_RULES  commands that move secrets off the machine
  SECRET_PATH_RULES   file paths Read/Edit/Write must not touch

Order matters: the first matching rule decides the rule id that is reported.
"""

from typing import List

from rules import Rule, RuleTable, SafetyLevel, rules_for_level

CRITICAL = SafetyLevel.CRITICAL
HIGH = SafetyLevel.HIGH
STRICT = SafetyLevel.STRICT

# rm followed by any number of option words
_RM = r"\brm\s+(-\S*\s+)*"
# end of a shell word
_END = r"(\s|$|;|&|\||>)"


# === DANGEROUS COMMANDS ===

DANGEROUS_RULES: RuleTable = {
    CRITICAL: (
        # Filesystem destruction
        Rule("rm-root", CRITICAL, _RM + r"/+" + _END,
             "Attempting to delete root filesystem"),
        Rule("rm-home", CRITICAL, _RM + r"(~/?|\$HOME/?|\$\{HOME\}/?|/home/\w+/?)" + _END,
             "Attempting to delete home directory"),
        Rule("rm-system-dirs", CRITICAL, _RM + r"/(etc|usr|var|bin|sbin|lib|lib64|boot|opt)\b",
             "Attempting to delete system directories"),
        Rule("rm-wildcard-root", CRITICAL, _RM + r"/\*",
             "Attempting to delete all files in root"),
        # Disk destruction
        Rule("dd-disk-device", CRITICAL,
             r"\bdd\b.*\bof=/dev/(sd[a-z]|nvme\d|hd[a-z]|vd[a-z]|xvd[a-z]|mmcblk\d|disk\d)",
             "Writing directly to disk device"),
        Rule("mkfs-device", CRITICAL, r"\bmkfs(\.\w+)?\s+.*?/dev/",
             "Formatting disk device"),
        Rule("fdisk-write", CRITICAL, r"\bfdisk\s+/dev/",
             "Modifying disk partition table"),
        # Fork bombs
        Rule("fork-bomb", CRITICAL, r":\(\)\s*\{.*:\s*\|\s*:.*&",
             "Fork bomb detected"),
        Rule("fork-bomb-alt", CRITICAL, r"fork\s*while\s*fork|while\s*true.*fork",
             "Fork bomb pattern detected"),
        # Boot/kernel destruction
        Rule("rm-boot", CRITICAL, _RM + r"/boot/",
             "Attempting to delete boot files"),
        Rule("rm-kernel", CRITICAL, _RM + r"/lib/modules",
             "Attempting to delete kernel modules"),
    ),
    HIGH: (
        # Remote code execution
        Rule("curl-pipe-sh", HIGH, r"\b(curl|wget)\b.*\|\s*(ba)?sh\b",
             "Piping remote content to shell (RCE risk)"),
        Rule("curl-pipe-zsh", HIGH, r"\b(curl|wget)\b.*\|\s*zsh\b",
             "Piping remote content to zsh"),
        Rule("curl-pipe-python", HIGH, r"\b(curl|wget)\b.*\|\s*python",
             "Piping remote content to Python"),
        # Git
        Rule("git-force-main", HIGH, r"\bgit\s+push\b.*\s(-f|--force)(\s|$).*\b(main|master)\b",
             "Force pushing to main/master branch"),
        Rule("git-force-main-alt", HIGH, r"\bgit\s+push\b.*\b(main|master)\b.*\s(-f|--force)(\s|$)",
             "Force pushing to main/master branch"),
        Rule("git-reset-hard", HIGH, r"\bgit\s+reset\s+--hard\b",
             "Hard reset loses uncommitted changes"),
        Rule("git-clean-force", HIGH, r"\bgit\s+clean\s+.*-[fdx]*f",
             "Force clean deletes untracked files"),
        # Permissions
        Rule("chmod-777", HIGH, r"\bchmod\b.*\b777\b",
             "Setting world-writable permissions"),
        Rule("chmod-recursive-permissive", HIGH, r"\bchmod\s+-R\s+[67][67][67]\b",
             "Recursive permissive chmod"),
        # Secrets exposure
        Rule("echo-secret-env", HIGH,
             r"\b(echo|printf)\b.*\$\{?\w*(SECRET|KEY|TOKEN|PASSWORD|CREDENTIAL)",
             "Echoing secret environment variable"),
        Rule("printenv-all", HIGH, r"^\s*printenv\s*$",
             "Dumping all environment variables"),
        Rule("env-dump", HIGH, r"^\s*env\s*$",
             "Dumping all environment variables"),
        Rule("cat-env-file", HIGH, r"\b(cat|less|more|head|tail)\b.*\.env\b",
             "Reading .env file contents"),
        # Reverse shells
        Rule("reverse-shell-bash", HIGH, r"\bbash\s+-i\s+>&\s*/dev/tcp/",
             "Reverse shell pattern detected"),
        Rule("reverse-shell-nc", HIGH, r"\b(nc|ncat|netcat)\b.*-e\s*/bin/(ba)?sh",
             "Netcat reverse shell detected"),
        # Containers
        Rule("docker-privileged", HIGH, r"\bdocker\s+run\b.*--privileged",
             "Running privileged container"),
        Rule("docker-host-mount", HIGH, r"\bdocker\s+run\b.*-v\s+/:/",
             "Mounting host root in container"),
        # SSH keys
        Rule("cat-ssh-key", HIGH, r"\bcat\b.*\.ssh/id_",
             "Reading SSH private key"),
        Rule("sudo-bash-c", HIGH, r"\bsudo\s+(ba)?sh\s+-c\b",
             "Sudo executing shell command"),
        # Persistence
        Rule("crontab-remove", HIGH, r"\bcrontab\s+-r\b",
             "Removes all cron jobs"),
    ),
    STRICT: (
        Rule("git-force-any", STRICT, r"\bgit\s+push\b.*\s(-f|--force)(\s|$)",
             "Force push (use --force-with-lease instead)"),
        Rule("sudo-rm", STRICT, r"\bsudo\s+rm\b",
             "Using sudo with rm command"),
        Rule("docker-system-prune", STRICT, r"\bdocker\s+system\s+prune\b",
             "Docker system prune removes containers/images"),
        Rule("docker-image-prune", STRICT, r"\bdocker\s+image\s+prune\s+-a",
             "Docker image prune -a removes all unused images"),
        # Database
        Rule("drop-database", STRICT, r"\bDROP\s+DATABASE\b",
             "Dropping database", ignore_case=True),
        Rule("truncate-table", STRICT, r"\bTRUNCATE\s+TABLE\b",
             "Truncating table", ignore_case=True),
        Rule("npm-cache-clean", STRICT, r"\bnpm\s+cache\s+clean\s+--force\b",
             "Clearing npm cache"),
        # Processes
        Rule("killall", STRICT, r"\bkillall\s+-9\b",
             "Force killing all processes by name"),
        Rule("pkill-all", STRICT, r"\bpkill\s+-9\b",
             "Force killing processes by pattern"),
        Rule("history-clear", STRICT, r"\bhistory\s+-c\b",
             "Clearing shell history"),
        Rule("rm-rf-star", STRICT, r"\brm\s+-rf\s+\*",
             "Recursive delete with wildcard"),
    ),
}


# === EXFILTRATION ===

_UPLOAD = r"\bcurl\b.*(-d|--data|-F|--form)\b.*@"

EXFILTRATION_RULES: RuleTable = {
    HIGH: (
        Rule("curl-upload-env", HIGH, _UPLOAD + r".*\.env\b",
             "Uploading .env file via curl"),
        Rule("curl-upload-credentials", HIGH, _UPLOAD + r".*credentials\b",
             "Uploading credentials file via curl"),
        Rule("curl-upload-key", HIGH, _UPLOAD + r".*\.(pem|key)\b",
             "Uploading key file via curl"),
        Rule("curl-upload-ssh", HIGH, _UPLOAD + r".*\.ssh/",
             "Uploading SSH files via curl"),
        Rule("curl-data-binary", HIGH, r"\bcurl\b.*--data-binary\s+@",
             "Curl uploading binary data from file"),
        Rule("scp-env-out", HIGH, r"\bscp\b.*\.env\b.*:",
             "Copying .env file to remote host"),
        Rule("scp-key-out", HIGH, r"\bscp\b.*\.ssh/id_.*:",
             "Copying SSH key to remote host"),
        Rule("scp-credentials-out", HIGH, r"\bscp\b.*credentials.*:",
             "Copying credentials to remote host"),
        Rule("rsync-env-out", HIGH, r"\brsync\b.*\.env\b.*:",
             "Syncing .env file to remote host"),
        Rule("rsync-ssh-out", HIGH, r"\brsync\b.*\.ssh/.*:",
             "Syncing SSH directory to remote host"),
        Rule("nc-exfil-env", HIGH, r"\b(nc|ncat|netcat)\b.*<.*\.env\b",
             "Sending .env file via netcat"),
        Rule("nc-exfil-key", HIGH, r"\b(nc|ncat|netcat)\b.*<.*\.(pem|key)\b",
             "Sending key file via netcat"),
        Rule("base64-env", HIGH, r"\bbase64\b.*\.env\b",
             "Base64 encoding .env file (potential exfiltration)"),
        Rule("base64-ssh-key", HIGH, r"\bbase64\b.*\.ssh/id_",
             "Base64 encoding SSH key (potential exfiltration)"),
        Rule("dns-exfil", HIGH, r"\bnslookup\b.*(\$\(|`)",
             "Potential DNS exfiltration"),
        Rule("dig-exfil", HIGH, r"\bdig\b.*(\$\(|`)",
             "Potential DNS exfiltration via dig"),
        Rule("tar-env-pipe", HIGH, r"\btar\b.*\.env\b.*\|",
             "Tarring .env file and piping"),
        Rule("tar-ssh-pipe", HIGH, r"\btar\b.*\.ssh\b.*\|",
             "Tarring .ssh directory and piping"),
        Rule("wget-post-file", HIGH, r"\bwget\b.*--post-file",
             "Wget posting file data (potential exfiltration)"),
        Rule("wget-post-data", HIGH, r"\bwget\b.*--post-data",
             "Wget posting data (potential exfiltration)"),
        Rule("wget-method-post", HIGH, r"\bwget\b.*--method=POST",
             "Wget POST request (potential exfiltration)"),
        Rule("dev-tcp-write", HIGH, r">\s*/dev/tcp/",
             "Writing to /dev/tcp (network exfiltration)"),
        Rule("dev-udp-write", HIGH, r">\s*/dev/udp/",
             "Writing to /dev/udp (network exfiltration)"),
        Rule("dev-tcp-redirect", HIGH, r"/dev/tcp/\S+",
             "Using /dev/tcp (bash network socket)"),
        Rule("aws-s3-cp-env", HIGH, r"\baws\s+s3\s+cp\b.*\.env\b",
             "AWS S3 copying .env file"),
        Rule("aws-s3-cp-ssh", HIGH, r"\baws\s+s3\s+cp\b.*\.ssh/",
             "AWS S3 copying SSH directory"),
        Rule("aws-s3-cp-credentials", HIGH, r"\baws\s+s3\s+cp\b.*credentials",
             "AWS S3 copying credentials file"),
    ),
}


# === SECRET FILE PATHS ===

SECRET_PATH_RULES: RuleTable = {
    CRITICAL: (
        Rule("env-file", CRITICAL, r"\.env$",
             "Environment file may contain secrets"),
        Rule("env-local", CRITICAL, r"\.env\.local$",
             "Local environment file may contain secrets"),
        Rule("env-production", CRITICAL, r"\.env\.production$",
             "Production environment file contains secrets"),
        Rule("ssh-private-key", CRITICAL, r"\.ssh/id_(rsa|ed25519|ecdsa|dsa)$",
             "SSH private key file"),
        Rule("aws-credentials", CRITICAL, r"\.aws/credentials$",
             "AWS credentials file"),
        Rule("kube-config", CRITICAL, r"\.kube/config$",
             "Kubernetes config with credentials"),
        Rule("pem-file", CRITICAL, r"\.pem$",
             "PEM certificate/key file"),
        Rule("p12-file", CRITICAL, r"\.(p12|pfx)$",
             "PKCS#12 certificate file"),
        Rule("key-file", CRITICAL, r"\.key$",
             "Private key file"),
    ),
    HIGH: (
        Rule("credentials-json", HIGH, r"credentials\.json$",
             "Credentials configuration file"),
        Rule("secrets-file", HIGH, r"secrets?\.(json|ya?ml|toml)$",
             "Secrets configuration file"),
        Rule("docker-config", HIGH, r"\.docker/config\.json$",
             "Docker registry credentials"),
        Rule("netrc", HIGH, r"\.netrc$",
             "Network credentials file"),
        Rule("npmrc", HIGH, r"\.npmrc$",
             "npm authentication tokens"),
        Rule("pypirc", HIGH, r"\.pypirc$",
             "PyPI authentication file"),
        Rule("pgpass", HIGH, r"\.pgpass$",
             "PostgreSQL password file"),
        Rule("my-cnf", HIGH, r"\.my\.cnf$",
             "MySQL credentials file"),
        Rule("gcp-credentials", HIGH, r"gcloud/credentials\.db$",
             "GCP credentials database"),
        Rule("azure-profile", HIGH, r"\.azure/accessTokens\.json$",
             "Azure access tokens"),
        Rule("github-token", HIGH, r"\.github/token$",
             "GitHub token file"),
        Rule("gnupg-keyring", HIGH, r"\.gnupg/(secring|private-keys)",
             "GPG private keyring"),
    ),
    STRICT: (
        Rule("config-with-auth", STRICT, r"(config|settings)\.(json|ya?ml|toml)$",
             "Configuration file may contain credentials"),
        Rule("htpasswd", STRICT, r"\.htpasswd$",
             "Apache password file"),
        Rule("shadow", STRICT, r"^/etc/shadow$",
             "System password hashes"),
        Rule("passwd", STRICT, r"^/etc/passwd$",
             "System user database"),
    ),
}


def get_dangerous_rules(level: SafetyLevel) -> List[Rule]:
    return rules_for_level(DANGEROUS_RULES, level)


def get_exfiltration_rules(level: SafetyLevel) -> List[Rule]:
    return rules_for_level(EXFILTRATION_RULES, level)


def get_secret_rules(level: SafetyLevel) -> List[Rule]:
    return rules_for_level(SECRET_PATH_RULES, level)


def all_rules() -> List[Rule]:
    """Every rule in every table, regardless of level."""
    return (
        get_dangerous_rules(STRICT)
        + get_exfiltration_rules(STRICT)
        + get_secret_rules(STRICT)
    )

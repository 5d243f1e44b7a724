# Utils package
from .secret_masker import SecretMasker

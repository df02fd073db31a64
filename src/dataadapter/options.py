from dataclasses import dataclass

__all__ = ['AdapterOptions']


@dataclass
class AdapterOptions:
    """Options

    - config_path: JSON document read by configure() and on first use
    - section: name of the object holding connection name -> URL pairs
    """
    config_path: str = 'appsettings.json'
    section: str = 'ConnectionStrings'

    def __post_init__(self):
        if not self.config_path:
            raise ValueError('config_path must be a non-empty path')
        if not self.section:
            raise ValueError('section must be a non-empty name')

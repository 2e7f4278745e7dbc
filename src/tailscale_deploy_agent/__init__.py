"""
Tailscale Deploy Agent
Windows 호스트에 Tailscale 에이전트를 무인 설치/인증/제거하는 배포 에이전트

Features:
- 최신 안정판 MSI 자동 다운로드 및 캐시 재사용
- msiexec 무인 설치 및 서비스 기동 대기
- Auth key / ACL 태그 기반 자동 인증
- 서비스 중지, 패키지 제거, 상태 디렉토리 정리
"""

__version__ = "1.0.0"
__author__ = "DevOps Team"
